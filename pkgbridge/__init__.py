"""pkgbridge - bridge an externally built package tree into a host bundler.

This package classifies module requests and files of the external build,
synthesizes bridge modules for the ``external/*`` namespace, routes files
to content transformers and emits an autoupdate fingerprint after each
build.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
