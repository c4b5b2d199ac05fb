"""
Unpacking of a downloaded release: signmar invocation, platform layout
translation and in-place decompression.
"""

from .decompress import decompress_file, decompress_tree
from .extraction import run_signmar, signmar_path
from .layout import PLATFORM_LAYOUTS, PlatformLayout, relocate_tor_files, tor_binary_filename

__all__ = [
    "PLATFORM_LAYOUTS",
    "PlatformLayout",
    "decompress_file",
    "decompress_tree",
    "relocate_tor_files",
    "run_signmar",
    "signmar_path",
    "tor_binary_filename",
]
