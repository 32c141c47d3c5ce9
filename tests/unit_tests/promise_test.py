# -*- coding: utf-8 -*-

import logging
import sys

import pytest

from deferred_rejection import Promise, TimeoutError


class Err(Exception):
    pass


def _pending():
    """Pending promise, and the hooks settling it."""
    hooks = {}

    def executor(fulfill, reject):
        hooks['fulfill'] = fulfill
        hooks['reject'] = reject

    return Promise(executor), hooks


class TestSettlement(object):

    def setup_method(self, method):
        logger = logging.getLogger()
        for h in list(logger.handlers):
            logger.removeHandler(h)

    def test_pending_until_settled(self):
        p, hooks = _pending()
        with pytest.raises(TimeoutError):
            p.result(0)
        with pytest.raises(TimeoutError):
            p.exception(0)

        hooks['fulfill']('VALUE')
        assert p.result(0) == 'VALUE'
        assert p.exception(0) is None

    def test_executor_exception_rejects(self):
        def executor(fulfill, reject):
            raise Err()

        p = Promise(executor)
        with pytest.raises(Err):
            p.result(0)

    def test_settle_once(self, capsys):
        """Only the first settlement counts; the next ones are logged."""
        logging.basicConfig(stream=sys.stdout)
        err = Err()
        p, hooks = _pending()
        errors = []
        p._add_errback(errors.append)

        hooks['reject'](err)
        hooks['reject'](Err())
        hooks['fulfill'](1)

        assert errors == [err]
        assert p.exception(0) is err
        out, _ = capsys.readouterr()
        assert 'already settled' in out

    def test_errback_on_settled_promise(self):
        """A reaction added after the settlement runs right away."""
        err = Err()
        p = Promise(lambda fulfill, reject: reject(err))
        errors = []
        values = []

        p._add_errback(errors.append)
        p._add_callback(values.append)
        assert errors == [err]
        assert values == []

    def test_non_exception_reason(self):
        p = Promise(lambda fulfill, reject: reject('reason'))

        assert p.exception(0) == 'reason'
        with pytest.raises(TypeError):
            p.result(0)

    def test_failing_reaction_is_logged(self, capsys):
        logging.basicConfig(stream=sys.stdout)

        def reaction(value):
            raise Err()

        p, hooks = _pending()
        p._add_callback(reaction)
        hooks['fulfill'](1)

        out, _ = capsys.readouterr()
        assert 'Promise reaction raised an exception!' in out
        assert p.result(0) == 1

    def test_safeguard(self, capsys):
        logging.basicConfig(stream=sys.stdout)

        p, hooks = _pending()
        p.safeguard()
        hooks['reject'](Err('GUARDED'))

        out, _ = capsys.readouterr()
        assert '[SAFEGUARD]' in out
        assert 'GUARDED' in out


class TestChaining(object):

    def setup_method(self, method):
        logger = logging.getLogger()
        for h in list(logger.handlers):
            logger.removeHandler(h)

    def test_then_transforms_value(self):
        p, hooks = _pending()
        p2 = p.then(lambda value: value + 1)

        hooks['fulfill'](1)
        assert p2.result(0) == 2

    def test_then_transmits_rejection(self):
        """Without error reaction, the reason goes down the chain."""
        err = Err()
        p = Promise(lambda fulfill, reject: reject(err))
        p2 = p.then(lambda value: value).then(lambda value: value)
        assert p2.exception(0) is err

    def test_catch_recovers(self):
        p = Promise.reject(Err())
        assert p.catch(lambda reason: 'RECOVERED').result(0) == 'RECOVERED'

    def test_reaction_raising_rejects(self):
        def reaction(value):
            raise Err()

        p = Promise.resolve(1).then(reaction)
        assert isinstance(p.exception(0), Err)

    def test_reaction_returning_promise(self):
        """The chained promise adopts the state of the returned promise."""
        inner, hooks = _pending()
        p = Promise.resolve(1).then(lambda value: inner)

        with pytest.raises(TimeoutError):
            p.result(0)
        hooks['reject'](Err())
        assert isinstance(p.exception(0), Err)

    def test_resolve_returns_thenable_as_is(self):
        p = Promise.resolve(2)
        assert Promise.resolve(p) is p

    def test_all(self):
        p1, hooks1 = _pending()
        p2, hooks2 = _pending()
        p = Promise.all([p1, p2])

        hooks2['fulfill']('B')
        with pytest.raises(TimeoutError):
            p.result(0)
        hooks1['fulfill']('A')
        assert p.result(0) == ['A', 'B']
        assert Promise.all([]).result(0) == []

    def test_all_rejected_by_first_reason(self, capsys):
        logging.basicConfig(stream=sys.stdout)
        err = Err()
        p1, hooks1 = _pending()
        p2, hooks2 = _pending()
        p = Promise.all([p1, p2])

        hooks1['reject'](err)
        hooks2['reject'](Err())
        assert p.exception(0) is err
        out, _ = capsys.readouterr()
        assert 'already settled' not in out

    def test_race(self):
        p1, hooks1 = _pending()
        p2, hooks2 = _pending()
        p = Promise.race([p1, p2])

        hooks2['fulfill']('FIRST')
        hooks1['reject'](Err())
        assert p.result(0) == 'FIRST'

        with pytest.raises(ValueError):
            Promise.race([])


class TestDerivedClass(object):
    """_derived_class() gives the type of every promise built from another."""

    class SubPromise(Promise):
        pass

    class PlainDerivedPromise(Promise):
        @classmethod
        def _derived_class(cls):
            return Promise

    def test_derived_promises_keep_the_class(self):
        cls = self.SubPromise
        p = cls(lambda fulfill, reject: fulfill(1))

        assert type(p.then(lambda value: value)) is cls
        assert type(p.catch(lambda reason: None)) is cls
        assert type(cls.resolve(3)) is cls
        assert type(cls.reject(Err())) is cls
        assert type(cls.all([p])) is cls
        assert type(cls.race([p])) is cls

    def test_override_derived_class(self):
        cls = self.PlainDerivedPromise
        p = cls(lambda fulfill, reject: fulfill(1))

        assert type(p.then(lambda value: value)) is Promise
        assert type(p.catch(lambda reason: None)) is Promise
        assert type(cls.resolve(3)) is Promise
        assert type(cls.reject(Err())) is Promise
        assert type(cls.all([])) is Promise
        assert type(cls.race([p])) is Promise

    def test_repr(self):
        def task(fulfill, reject):
            fulfill(1)

        def double(value):
            return value * 2

        p = self.SubPromise(task).then(double)
        assert repr(p) == 'SubPromise(task F -> <double, None> F)'
