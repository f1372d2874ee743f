from . import claims, event, inventory, user  # noqa: F401
