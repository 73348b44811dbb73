"""
Configuration file location.

Only the location is handled here: the default path advertised in help and the
transform applied to `-c/--config PATH`. Reading the file is left to the host tool.
"""
import os
import os.path

HOME_ENV = "TILLER_HOME"
FILENAME = "config.toml"


def home():
    """
    Base directory for tiller state: $TILLER_HOME, or ~/.tiller.
    """
    return os.environ.get(HOME_ENV) or os.path.join(os.path.expanduser("~"), ".tiller")


def default_location():
    return os.path.join(home(), FILENAME)


def custom_location(path, /):
    """
    Resolve a user-supplied config path to an absolute path of an existing file.

    Raises ValueError when the path is empty or does not point at a file; the option
    parser turns that into a malformed-value error for the invoking command.
    """
    if not isinstance(path, str) or not path.strip():
        raise ValueError("a config path is required")
    location = os.path.abspath(os.path.expanduser(path.strip()))
    if not os.path.isfile(location):
        raise ValueError(f"no config file found at {location}")
    return location


__all__ = (
    "home",
    "default_location",
    "custom_location",
)
