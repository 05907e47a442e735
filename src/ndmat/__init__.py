from ndmat._version import version as __version__
from ndmat.core.array import Array, ArrayView
from ndmat.core.config import config
from ndmat.core.descriptor import Descriptor
from ndmat.core.iterator import Cursor
from ndmat.creation import array, from_array, from_view, full, make, zeros
from ndmat.errors import (
    AllocationFailureError,
    EmptyArrayError,
    IncompatibleDtypeError,
    IndexOutOfRangeError,
    InvalidShapeError,
    JaggedLiteralError,
    ShapeMismatchError,
)


def print_debug_info() -> None:
    """
    Print version info for use in bug reports.
    """
    import platform
    from importlib.metadata import PackageNotFoundError, version

    def print_packages(packages: list[str]) -> None:
        not_installed = []
        for package in packages:
            try:
                print(f"{package}: {version(package)}")
            except PackageNotFoundError:
                not_installed.append(package)
        if not_installed:
            print("\n**Not Installed:**")
            for package in not_installed:
                print(package)

    required = ["numpy", "donfig"]
    optional = ["hypothesis", "pytest"]

    print(f"platform: {platform.platform()}")
    print(f"python: {platform.python_version()}")
    print(f"ndmat: {__version__}\n")
    print("**Required dependencies:**")
    print_packages(required)
    print("\n**Optional dependencies:**")
    print_packages(optional)


__all__ = [
    "AllocationFailureError",
    "Array",
    "ArrayView",
    "Cursor",
    "Descriptor",
    "EmptyArrayError",
    "IncompatibleDtypeError",
    "IndexOutOfRangeError",
    "InvalidShapeError",
    "JaggedLiteralError",
    "ShapeMismatchError",
    "__version__",
    "array",
    "config",
    "from_array",
    "from_view",
    "full",
    "make",
    "print_debug_info",
    "zeros",
]
