# -*- coding: utf-8 -*-

import logging
from threading import Lock
from .deferral import PromiseDeferredRejection

_logger = logging.getLogger(__name__)


class PromiseDeferredRejectionBatch(object):
    """Group of deferred-rejection promises released all at once.

    Promises created with `create()` are kept in the batch until the batch is
    released. Releasing the batch releases all of them, delivering their
    pending rejections.
    Once the batch is released, new promises are released at creation: their
    rejection is delivered without delay.

    Members are referenced by the batch until its release: a pending
    rejection is delivered even if nothing else references the promise.
    """

    def __init__(self):
        self._lock = Lock()
        self._promises = set()
        self._released = False

        batch = self

        class BatchPromise(PromiseDeferredRejection):
            """PromiseDeferredRejection enrolled in a batch at creation."""

            def __init__(self, executor, _name=None, _previous=None):
                PromiseDeferredRejection.__init__(self, executor, _name=_name,
                                                  _previous=_previous)
                batch._enroll(self)

            @classmethod
            def _derived_class(cls):
                return cls

        self._promise_class = BatchPromise

    @property
    def promise_class(self):
        """type: the promise class bound to this batch.

        Each instance joins the batch when it's created, like promises built
        by `create()`.
        """
        return self._promise_class

    @property
    def is_released(self):
        """bool: True once `release()` has been called."""
        with self._lock:
            return self._released

    def __len__(self):
        with self._lock:
            if self._released:
                return 0
            return len(self._promises)

    def _enroll(self, promise):
        with self._lock:
            if not self._released:
                self._promises.add(promise)
                return
        promise.release()

    def create(self, executor):
        """Create a new promise belonging to the batch.

        Args:
            executor (callable): executor of the new promise. See
                `PromiseDeferredRejection`.
        Returns:
            PromiseDeferredRejection: new promise. If the batch is already
                released, so is the promise.
        """
        return self._promise_class(executor)

    def release(self):
        """Release all the promises of the batch.

        Pending rejections are delivered. Calling it several times has no
        effect after the first call.
        """
        with self._lock:
            if self._released:
                return
            self._released = True
            promises = list(self._promises)
            self._promises = None

        _logger.debug('Release batch of %s promise(s)', len(promises))
        for promise in promises:
            promise.release()
