"""Language adapters — python."""

from pymanager.adapters.languages.python import ProbeResult, PythonProbe

__all__ = ["ProbeResult", "PythonProbe"]
