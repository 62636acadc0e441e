"""
EVTC Summary - Parse errors

Every error is fatal to the parse that raised it; there is no partial result.
"""


class EVTCError(Exception):
    """Base class for all EVTC decoding failures"""


class MalformedHeader(EVTCError):
    """Bad magic, non-digit build id, short or unterminated header"""


class UnsupportedRevision(EVTCError):
    """Combat event revision newer than any known layout"""

    def __init__(self, revision: int):
        super().__init__(f"Unsupported combat event revision: {revision}")
        self.revision = revision


class MalformedAgent(EVTCError):
    """Agent name blob is missing its NUL terminators"""


class CorruptedFile(EVTCError):
    """Offsets or event region inconsistent with the file length"""


class IoError(EVTCError, OSError):
    """Open, seek or read failure on the source file"""
