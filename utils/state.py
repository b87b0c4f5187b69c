from core.logger import SERVICE_NAME, SERVICE_VERSION, SingletonLogger


class SingletonMeta(type):
    """A metaclass for creating singleton classes."""

    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]


class State(metaclass=SingletonMeta):
    """Process-wide handles shared by routes and controllers."""

    service = f"{SERVICE_NAME} {SERVICE_VERSION}"
    logger = SingletonLogger().get_logger()
