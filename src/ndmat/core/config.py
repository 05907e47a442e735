"""
The config module is responsible for managing the configuration of ndmat and is based on the Donfig python library.

Example:
    Arrays built from explicit extents use ``array.dtype`` as their element type unless one is
    passed. To make integer arrays the default:

    ```python
    from ndmat.core.config import config

    config.set({"array.dtype": "int64"})
    ```

    Instead of setting the value programmatically with ``config.set``, you can also set the value
    with an environment variable. The environment variable ``NDMAT_ARRAY__DTYPE`` can be set to
    ``int64``. The double underscore ``__`` is used to indicate nested access.

    ```bash
    export NDMAT_ARRAY__DTYPE="int64"
    ```

For more information, see the Donfig documentation at https://github.com/pytroll/donfig.
"""

from __future__ import annotations

from typing import Any, Literal, cast

from donfig import Config as DConfig

CastingRule = Literal["no", "equiv", "safe", "same_kind", "unsafe"]
CASTING_RULES: tuple[str, ...] = ("no", "equiv", "safe", "same_kind", "unsafe")


class BadConfigError(ValueError):
    _msg = "bad Config: %r"


class Config(DConfig):  # type: ignore[misc]
    """The Config will collect configuration from config files and environment variables

    Example environment variables:
    Grabs environment variables of the form "NDMAT_FOO__BAR_BAZ=123" and
    turns these into config variables of the form ``{"foo": {"bar-baz": 123}}``
    It transforms the key and value in the following way:

    -  Lower-cases the key text
    -  Treats ``__`` (double-underscore) as nested access
    -  Calls ``ast.literal_eval`` on the value

    """

    def reset(self) -> None:
        self.clear()
        self.refresh()


# The default configuration for ndmat
config = Config(
    "ndmat",
    defaults=[
        {
            "array": {
                "dtype": "float64",
                "boundscheck": True,
                "casting": "unsafe",
            },
            "buffer": "ndmat.core.buffer.Buffer",
        }
    ],
)


def parse_casting(data: Any) -> CastingRule:
    if data in CASTING_RULES:
        return cast("CastingRule", data)
    msg = f"Expected one of {CASTING_RULES}, got {data!r} instead."
    raise BadConfigError(msg)
