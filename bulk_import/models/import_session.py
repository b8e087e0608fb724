from __future__ import annotations

from enum import Enum

"""ImportStage enum for the bulk label import session.

The session moves strictly forward through the stages; the only way back is an
explicit reset to UPLOAD (see services.session.ImportSession).
"""

__all__ = [
    "ImportStage",
    "FORWARD_TRANSITIONS",
]


class ImportStage(Enum):
    """Lifecycle stage of an import session.

    State transitions: upload → map → review → processing → complete

    - UPLOAD: waiting for a spreadsheet
    - MAP: file parsed, column mapping proposed and editable
    - REVIEW: rows transformed and validated, waiting for confirmation
    - PROCESSING: batch engine is submitting orders
    - COMPLETE: batch finished, results available
    """
    UPLOAD = "upload"
    MAP = "map"
    REVIEW = "review"
    PROCESSING = "processing"
    COMPLETE = "complete"


FORWARD_TRANSITIONS: dict[ImportStage, ImportStage] = {
    ImportStage.UPLOAD: ImportStage.MAP,
    ImportStage.MAP: ImportStage.REVIEW,
    ImportStage.REVIEW: ImportStage.PROCESSING,
    ImportStage.PROCESSING: ImportStage.COMPLETE,
}
