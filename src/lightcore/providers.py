"""Service providers — two-phase registration of application services.

Every provider's ``register()`` runs before any provider's ``boot()``,
so ``boot()`` may resolve services that later providers registered::

    class MailServiceProvider(ServiceProvider):
        def register(self, container: Container) -> None:
            container.singleton(Mailer, lambda: Mailer(container.get(AppConfig)))

    app = App(config, providers=[MailServiceProvider()])
"""

from lightcore.config import AppConfig
from lightcore.container import Container
from lightcore.data.connection import Connection
from lightcore.data.database import Database


class ServiceProvider:
    """Base provider. Subclasses must implement ``register()``."""

    def register(self, container: Container) -> None:
        raise NotImplementedError

    def boot(self, container: Container) -> None:
        """Called once every provider has registered. No-op by default."""


class CoreServiceProvider(ServiceProvider):
    """Exposes the application's own parts through the container.

    Binds ``AppConfig``, ``Router``, ``Dispatcher``, the app's
    ``RuleRegistry`` and the ``Container`` itself to the instances owned
    by the ``App``.
    """

    def register(self, container: Container) -> None:
        from lightcore.app import App
        from lightcore.routing import Dispatcher, Router
        from lightcore.validation.rules import RuleRegistry

        app: App = container.get(App)
        container.instance(AppConfig, app.config)
        container.instance(Router, app.router)
        container.instance(Dispatcher, app.dispatcher)
        container.instance(RuleRegistry, app.rules)
        container.instance(Container, container)


class DatabaseServiceProvider(ServiceProvider):
    """Registers ``Connection`` and ``Database`` singletons.

    Only when ``AppConfig.database`` is set. The connection opens lazily
    on the first statement, not at boot.
    """

    def register(self, container: Container) -> None:
        config = container.get(AppConfig).database
        if config is None:
            return
        container.singleton(Connection, lambda: Connection(config))
        container.singleton(Database, lambda: Database(container.get(Connection)))
