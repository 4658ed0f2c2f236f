import unittest

from simpledi import ServiceCollection, ServiceProvider


class Settings: ...


class TestVariadicConstructorInjection(unittest.TestCase):
    services: ServiceCollection

    def setUp(self):
        self.services = ServiceCollection()

    def build(self) -> ServiceProvider:
        return self.services.build_provider()

    def test_resolve_ignores_inherited_variadic_args_and_kwargs(self):
        class Base:
            def __init__(self, value: int = 7, *args, **kwargs):
                self.value = value
                self.args = args
                self.kwargs = kwargs

        class Derived(Base):
            ...
            # No explicit __init__; inherits Base.__init__ with *args/**kwargs

        self.services.add_transient(Derived)
        child = self.build().resolve(Derived)
        assert isinstance(child, Derived)
        assert child.value == 7
        assert child.args == ()
        assert child.kwargs == {}

    def test_variadic_parameters_do_not_count_toward_arity(self):
        class Service:
            def __init__(self, settings: Settings, *args: Settings, **kwargs: Settings):
                self.settings = settings
                self.extra = (args, kwargs)

        self.services.add_singleton(Settings).add_transient(Service)
        provider = self.build()
        service = provider.resolve(Service)
        assert service.settings is provider.resolve(Settings)
        assert service.extra == ((), {})
