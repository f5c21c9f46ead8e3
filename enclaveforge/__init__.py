"""enclaveforge: build an enclave function image and report its measurement.

Pipeline: build -> (push) -> run -> extract -> cleanup.  The resulting
MRENCLAVE value is written to ``measurement.txt`` and printed as
``MrEnclve: <value>``.
"""

__version__ = "0.1.0"

from enclaveforge.core.orchestrator import Orchestrator
from enclaveforge.models.stages import Workflow

__all__ = ["Orchestrator", "Workflow", "__version__"]
