import unittest

import pytest

from bindscope import Container, Context, InvalidResolverError


class A: ...


class TestLifetimeControl(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.ctx = Context.background()

    def test_resolve_register_singleton_returns_same_instance(self):
        self.cont.register_singleton(A)
        a1 = self.cont.resolve(self.ctx, A)
        a2 = self.cont.resolve(self.ctx, A)
        assert a2 is a1, "SINGLETON should return the cached instance"

    def test_resolve_register_transient_returns_new_instances(self):
        calls = []

        def make_a() -> A:
            calls.append(1)
            return A()

        self.cont.register_transient(make_a)
        a1 = self.cont.resolve(self.ctx, A)
        a2 = self.cont.resolve(self.ctx, A)
        assert a2 is not a1, "TRANSIENT should return new instances"
        assert len(calls) == 2

    def test_resolve_register_scoped_at_root_acts_like_singleton(self):
        calls = []

        def make_a() -> A:
            calls.append(1)
            return A()

        self.cont.register_scoped(make_a)
        assert self.cont.resolve(self.ctx, A) is self.cont.resolve(self.ctx, A)
        assert len(calls) == 1

    def test_register_does_not_invoke_factory(self):
        calls = []

        def make_a() -> A:
            calls.append(1)
            return A()

        self.cont.register_singleton(make_a)
        self.cont.register_scoped(make_a, name="scoped")
        assert calls == []

    def test_register_instance_is_always_singleton(self):
        inst = A()
        self.cont.register_instance(inst)
        a = self.cont.resolve(self.ctx, A)
        b = self.cont.resolve(self.ctx, A)
        assert a is inst
        assert b is inst

    def test_register_instance_with_value(self):
        self.cont.register_instance(5)
        assert self.cont.resolve(self.ctx, int) == 5

    def test_register_named_instance(self):
        inst = A()
        self.cont.register_instance(inst, name="a")
        assert self.cont.resolve_named(self.ctx, A, "a") is inst
        assert not self.cont.is_registered(A)

    def test_register_instance_as_dependency(self):
        self.cont.register_instance("value")

        def make_a(s: str) -> A:
            assert s == "value"
            return A()

        self.cont.register_singleton(make_a)
        assert isinstance(self.cont.resolve(self.ctx, A), A)

    def test_register_instance_rejects_functions(self):
        def make_a() -> A:
            return A()

        with pytest.raises(InvalidResolverError):
            self.cont.register_instance(make_a)

    def test_register_named_instance_rejects_classes(self):
        with pytest.raises(InvalidResolverError):
            self.cont.register_instance(A, name="a")

    def test_register_instance_rejects_callable_objects(self):
        class Handler:
            def __call__(self) -> None: ...

        with pytest.raises(InvalidResolverError):
            self.cont.register_instance(Handler())
