"""diskplan - Declarative provisioning of directory trees."""

__version__ = "0.1.0"
