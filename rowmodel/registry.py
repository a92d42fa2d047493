import logging

from rowmodel.config import Settings
from rowmodel.errors import ConfigurationError
from rowmodel.factory import ModelFactory

logger = logging.getLogger("rowmodel.registry")


class Registry:
    """Owns the row store, the settings and one ModelFactory per model name.

    Factories find each other through here, so associations may name models
    that are registered later, as long as they are registered before use.
    """

    def __init__(self, row_store, settings=None):
        self.row_store = row_store
        self.settings = settings or Settings()
        self._factories = {}

    def __repr__(self):
        return f"<Registry models={self.model_names()}>"

    def __contains__(self, model_name):
        return model_name in self._factories

    def factory(self, model_name):
        try:
            return self._factories[model_name]
        except KeyError:
            raise ConfigurationError(f"Unknown model {model_name}") from None

    def model_names(self):
        return list(self._factories)

    def create_factory(self, model_name, options=None, model_class=None):
        if model_name in self._factories:
            raise ConfigurationError(f"Model {model_name} is already registered")
        factory = ModelFactory(model_name, self, options, model_class)
        self._factories[model_name] = factory
        logger.debug(f"Registered {model_name}")
        return factory

    def register(self, *model_classes):
        """Create the factories of Model subclasses.

        The model name is the class's model_name attribute or its class name,
        the options come from its model_options dict.
        """
        created = []
        for cls in model_classes:
            model_name = getattr(cls, "model_name", None) or cls.__name__
            options = getattr(cls, "model_options", None)
            created.append(self.create_factory(model_name, options, cls))
        return created[0] if len(created) == 1 else created
