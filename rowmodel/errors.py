class RowModelError(Exception):
    pass


class ConfigurationError(RowModelError):
    """Bad factory options or an unknown model. Raised at setup time."""


class SchemaError(ConfigurationError):
    def __init__(self, table_name):
        super().__init__(f"Table or view '{table_name}' does not exist")
        self.table_name = table_name


class AttributeDecodeError(RowModelError):
    def __init__(self, model_name, attr, raw):
        super().__init__(f"Malformed JSON in {model_name}.{attr}: {raw!r}")
        self.model_name = model_name
        self.attr = attr
        self.raw = raw


class AmbiguousError(RowModelError):
    """More than one row matched a lookup that should be unique."""

    def __init__(self, model_name, attr_values, found):
        super().__init__(
            f"{len(found)} {model_name} rows match {attr_values}, expected at most one"
        )
        self.model_name = model_name
        self.attr_values = attr_values
        self.found = found


class NotStoredError(RowModelError):
    def __init__(self, instance, action):
        super().__init__(f"{instance!r} must be stored before {action}")
        self.instance = instance
