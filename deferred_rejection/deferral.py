# -*- coding: utf-8 -*-

import logging
from threading import Lock
from .promise import Promise

_logger = logging.getLogger(__name__)


class PromiseDeferredRejection(Promise):
    """Promise whose rejection is held back until it's released.

    The executor drives an internal promise. A fulfillment of the internal
    promise is transmitted as is. A rejection is kept aside as long as the
    promise defers, and is delivered when the promise is released.

    The promise is released either by an explicit call to `release()`, or by
    the first call to `then()` (or `catch()`) with a rejection callback: the
    caller is then ready to handle the error.

    A rejection of a released promise is delivered immediately.

    Promises derived from it are plain `Promise` objects: only the original
    rejection is deferred.
    """

    def __init__(self, executor, _name=None, _previous=None):
        """
        Args:
            executor (callable): Takes 2 callable arguments, like the executor
                of `Promise`. They settle the internal promise.
            _name (str): if set, name used when converted to text.
            _previous (Promise): if set, the promise this one is chained to.
        """
        self._deferral_lock = Lock()
        self._deferring = True
        self._deferred_reason_pending = False
        self._stored_reason = None
        self._reject_hook = None

        hooks = []

        def capture(on_fulfilled, on_rejected):
            hooks.append(on_fulfilled)
            self._reject_hook = on_rejected

        name = _name or getattr(executor, '__name__', '???')
        Promise.__init__(self, capture, _name=name, _previous=_previous)

        internal = Promise(executor, _name=name)
        internal._add_callback(hooks[0])
        internal._add_errback(self._intercept_rejection)

    @classmethod
    def _derived_class(cls):
        return Promise

    @property
    def is_deferring(self):
        """bool: True as long as the promise has not been released."""
        with self._deferral_lock:
            return self._deferring

    def _intercept_rejection(self, reason):
        with self._deferral_lock:
            deferred = self._deferring
            if deferred:
                self._stored_reason = reason
                self._deferred_reason_pending = True

        if deferred:
            _logger.debug('Rejection of %r deferred: %r', self, reason)
        else:
            self._reject_hook(reason)

    def then(self, on_fulfilled=None, on_rejected=None):
        """Chain callbacks, like `Promise.then()`.

        If `on_rejected` is callable, the promise is released once the
        callbacks are registered, before this method returns.

        Returns:
            Promise<*>: new plain Promise depending of self.
        """
        result = self._then(on_fulfilled, on_rejected, Promise)
        if callable(on_rejected):
            self.release()
        return result

    def release(self):
        """End the deferral, and deliver the rejection kept aside, if any.

        Calling it several times has no effect after the first call.
        """
        with self._deferral_lock:
            if not self._deferring:
                return
            self._deferring = False
            if not self._deferred_reason_pending:
                return
            reason = self._stored_reason
            self._deferred_reason_pending = False
            self._stored_reason = None

        _logger.debug('Deliver deferred rejection of %r', self)
        self._reject_hook(reason)
