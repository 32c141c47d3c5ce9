# -*- coding: utf-8 -*-

from .__version__ import __version__  # noqa

from .batch import PromiseDeferredRejectionBatch
from .deferral import PromiseDeferredRejection
from .promise import Promise, TimeoutError
from .util import is_thenable

__all__ = ['is_thenable', 'Promise', 'PromiseDeferredRejection',
           'PromiseDeferredRejectionBatch', 'TimeoutError']
