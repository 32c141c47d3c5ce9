# -*- coding: utf-8 -*-

import logging
from threading import Condition, Lock
from .util import is_thenable

_logger = logging.getLogger(__name__)


class TimeoutError(Exception):
    """A promise was still pending when the allowed delay expired."""
    pass


def _first_settlement(fulfill, reject):
    """Wrap settlement hooks so that only the first call goes through.

    Later calls are dropped silently, instead of being logged as attempts
    to settle a promise twice.
    """
    lock = Lock()
    done = [False]

    def once(hook):
        def wrapper(value):
            with lock:
                if done[0]:
                    return
                done[0] = True
            hook(value)
        return wrapper

    return once(fulfill), once(reject)


class Promise(object):
    """Value or error of an operation, known once the operation is done.

    The executor given at construction receives two hooks: the first one
    fulfills the promise with a value, the second one rejects it with a
    reason. Only the first call to one of them is taken into account.

    Reactions chained with `then()` run in the thread settling the promise,
    or right away if the promise is already settled.

    Every promise built from an existing one (by `then()`, `catch()`, or the
    class methods `resolve()`, `reject()`, `all()` and `race()`) is an
    instance of `_derived_class()`.

    All methods are thread-safe.
    """

    PENDING = 'pending'
    FULFILLED = 'fulfilled'
    REJECTED = 'rejected'

    def __init__(self, executor, _name=None, _previous=None):
        """Build the promise, and run the executor before returning.

        An exception raised by the executor rejects the promise.

        Args:
            executor (callable): called with the fulfill and reject hooks.
            _name (str): if set, name used when converted to text.
            _previous (Promise): if set, the promise this one is chained to.
        """
        self._state = self.PENDING
        self._value = None
        self._condition = Condition()
        self._name = _name or getattr(executor, '__name__', '???')
        self._previous = _previous
        self._reactions = []

        def fulfill(value):
            self._settle(self.FULFILLED, value)

        def reject(reason):
            self._settle(self.REJECTED, reason)

        try:
            executor(fulfill, reject)
        except Exception as error:
            reject(error)

    @classmethod
    def _derived_class(cls):
        """Class of the promises built from this class or its instances."""
        return cls

    def _settle(self, state, value):
        with self._condition:
            if self._state != self.PENDING:
                _logger.warning('%r is already settled. The %s value is '
                                'ignored: %r', self, state, value)
                return
            if state == self.REJECTED and \
                    not isinstance(value, BaseException):
                _logger.warning('%r rejected with a non-exception value: %r',
                                self, value)
            self._state = state
            self._value = value
            reactions, self._reactions = self._reactions, None
            self._condition.notify_all()

        for reaction_state, reaction in reactions:
            if reaction_state == state:
                self._run_reaction(reaction, value)

    @staticmethod
    def _run_reaction(reaction, value):
        try:
            reaction(value)
        except Exception:
            _logger.exception('Promise reaction raised an exception!')

    def _add_reaction(self, state, reaction):
        with self._condition:
            if self._state == self.PENDING:
                self._reactions.append((state, reaction))
                return
            if self._state != state:
                return
            value = self._value
        self._run_reaction(reaction, value)

    def _add_callback(self, callback):
        self._add_reaction(self.FULFILLED, callback)

    def _add_errback(self, errback):
        self._add_reaction(self.REJECTED, errback)

    def _wait(self, timeout):
        if self._state == self.PENDING:
            self._condition.wait(timeout)
        if self._state == self.PENDING:
            raise TimeoutError()

    def result(self, timeout=None):
        """Block until the promise is settled, then return its value.

        Args:
            timeout (float, optional): maximum delay, in seconds. Waits
                indefinitely by default.
        Raises:
            TimeoutError: the promise is still pending after the delay.
            *: the rejection reason, if the promise is rejected.
        """
        with self._condition:
            self._wait(timeout)
            if self._state == self.REJECTED:
                raise self._value
            return self._value

    def exception(self, timeout=None):
        """Block until the promise is settled, then return its reason.

        Returns None if the promise is fulfilled.

        Raises:
            TimeoutError: the promise is still pending after the delay.
        """
        with self._condition:
            self._wait(timeout)
            if self._state == self.REJECTED:
                return self._value
            return None

    def then(self, on_fulfilled=None, on_rejected=None):
        """Chain reactions to the settlement of this promise.

        The returned promise adopts what the reaction returns (a value, or
        the state of a returned promise), or is rejected if the reaction
        raises. A missing reaction transmits the state of this promise as is.

        Args:
            on_fulfilled (callable, optional): receives the value.
            on_rejected (callable, optional): receives the reason.
        Returns:
            Promise: new promise, of class `_derived_class()`.
        """
        return self._then(on_fulfilled, on_rejected, self._derived_class())

    def _then(self, on_fulfilled, on_rejected, promise_class):

        def chained_executor(fulfill, reject):

            def react(reaction, passthrough, value):
                if reaction is None:
                    return passthrough(value)
                try:
                    outcome = reaction(value)
                except Exception as error:
                    return reject(error)
                if is_thenable(outcome):
                    outcome.then(fulfill, reject)
                else:
                    fulfill(outcome)

            self._add_callback(lambda value: react(on_fulfilled, fulfill,
                                                   value))
            self._add_errback(lambda reason: react(on_rejected, reject,
                                                   reason))

        name = '<%s, %s>' % (getattr(on_fulfilled, '__name__', None),
                             getattr(on_rejected, '__name__', None))
        return promise_class(chained_executor, _name=name, _previous=self)

    def catch(self, on_rejected):
        """Shortcut for `self.then(None, on_rejected)`."""
        return self.then(None, on_rejected)

    def safeguard(self):
        """Log the rejection of this promise as an error, when it happens.

        Meant to be called on the last promise of a chain, so that an error
        nobody handles doesn't go unnoticed.
        """
        def guard(reason):
            if isinstance(reason, BaseException):
                _logger.error('[SAFEGUARD] %s', self, exc_info=reason)
            else:
                _logger.error('[SAFEGUARD] %s: %r', self, reason)

        self._add_errback(guard)

    def __repr__(self):
        return '%s(%s)' % (type(self).__name__, self._inner_print())

    def _inner_print(self):
        with self._condition:
            state = self._state[0].upper()
        if self._previous:
            return '%s -> %s %s' % (self._previous._inner_print(), self._name,
                                    state)
        return '%s %s' % (self._name, state)

    @classmethod
    def resolve(cls, value):
        """Promise fulfilled with `value`. A thenable is returned as is."""
        if is_thenable(value):
            return value
        return cls._derived_class()(lambda fulfill, reject: fulfill(value),
                                    _name='RESOLVE')

    @classmethod
    def reject(cls, reason):
        """Promise rejected with `reason`."""
        return cls._derived_class()(lambda fulfill, reject: reject(reason),
                                    _name='REJECT')

    @classmethod
    def all(cls, promises):
        """Promise of the list of values of all `promises`, in order.

        It's rejected with the first rejection reason among `promises`.
        """
        promises = list(promises)

        def executor(fulfill, reject):
            fulfill, reject = _first_settlement(fulfill, reject)
            lock = Lock()
            values = [None] * len(promises)
            remaining = [len(promises)]

            def fulfill_one(index, value):
                with lock:
                    values[index] = value
                    remaining[0] -= 1
                    done = remaining[0] == 0
                if done:
                    fulfill(values)

            if not promises:
                return fulfill(values)
            for index, promise in enumerate(promises):
                promise.then(
                    lambda value, index=index: fulfill_one(index, value),
                    reject)

        return cls._derived_class()(executor, _name='ALL')

    @classmethod
    def race(cls, promises):
        """Promise settled like the first of `promises` to be settled.

        Raises:
            ValueError: `promises` is empty.
        """
        promises = list(promises)
        if not promises:
            raise ValueError('Empty promise list in Promise.race()')

        def executor(fulfill, reject):
            fulfill, reject = _first_settlement(fulfill, reject)
            for promise in promises:
                promise.then(fulfill, reject)

        return cls._derived_class()(executor, _name='RACE')
