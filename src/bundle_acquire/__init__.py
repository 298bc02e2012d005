"""Fetch a prebuilt engine bundle into the public and test-harness folders."""

from bundle_acquire.__version__ import __version__
from bundle_acquire.acquirer import AcquisitionReport, Acquirer, build_acquirer
from bundle_acquire.artifacts import ArtifactLayout, Destination, DestinationSet
from bundle_acquire.config import AcquireSettings, load_settings
from bundle_acquire.result import Err, Ok, Result

__all__ = [
    "__version__",
    "Acquirer",
    "AcquisitionReport",
    "AcquireSettings",
    "ArtifactLayout",
    "Destination",
    "DestinationSet",
    "Err",
    "Ok",
    "Result",
    "build_acquirer",
    "load_settings",
]
