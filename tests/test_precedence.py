import unittest

import pytest

from bindscope import Container, Context, ResolutionError


class DB: ...


class AnotherDB(DB): ...


class TestResolutionPrecedence(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.ctx = Context.background()

    def test_resolve_uses_unnamed_binding_for_dependencies_when_named_one_exists(self):
        class Repo:
            def __init__(self, db: DB):
                self.db = db

        self.cont.register_singleton(DB)
        self.cont.register_singleton(AnotherDB, abstraction=DB, name="db")
        self.cont.register_singleton(Repo)

        obj = self.cont.resolve(self.ctx, Repo)

        assert type(obj.db) is DB

    def test_resolve_prefers_registration_over_default_value(self):
        class WithDefault:
            def __init__(self, port: int = 5555):
                self.port = port

        self.cont.register_instance(1234)
        self.cont.register_transient(WithDefault)

        assert self.cont.resolve(self.ctx, WithDefault).port == 1234

    def test_resolve_uses_default_when_dependency_is_not_registered(self):
        class WithDefault:
            def __init__(self, port: int = 5555):
                self.port = port

        self.cont.register_transient(WithDefault)

        assert self.cont.resolve(self.ctx, WithDefault).port == 5555

    def test_default_does_not_hide_a_failing_registration(self):
        def make_db() -> DB:
            msg = "cannot connect"
            raise ConnectionError(msg)

        class Repo:
            def __init__(self, db: DB = None):
                self.db = db

        self.cont.register_transient(make_db)
        self.cont.register_transient(Repo)

        with pytest.raises(ResolutionError) as exc_info:
            self.cont.resolve(self.ctx, Repo)

        assert exc_info.value.caused_by(ConnectionError)

    def test_default_keeps_later_positional_dependencies_aligned(self):
        class Service:
            def __init__(self, port: int = 80, db: DB = None, label: str = "svc"):
                self.port = port
                self.db = db
                self.label = label

        self.cont.register_singleton(DB)
        self.cont.register_singleton(Service)

        svc = self.cont.resolve(self.ctx, Service)

        assert svc.port == 80
        assert isinstance(svc.db, DB)
        assert svc.label == "svc"

    def test_scope_registration_wins_over_parent(self):
        scope = self.cont.new_scope()
        self.cont.register_singleton(DB)
        scope.register_singleton(AnotherDB, abstraction=DB)

        assert type(scope.resolve(self.ctx, DB)) is AnotherDB
        assert type(self.cont.resolve(self.ctx, DB)) is DB
