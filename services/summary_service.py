"""
Summary Service
Parses uploaded combat logs and keeps a history of the summaries produced
"""

import hashlib
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Dict, List, Any

from fastapi.concurrency import run_in_threadpool
from tinydb import TinyDB, Query

import config
from formatting import summary_to_dict
from logger import get_logger
from parser import EVTCParser

logger = get_logger('summary_service')


@dataclass
class SummaryRecord:
    """One parsed upload, keyed by the SHA-256 of its bytes"""
    sha256: str
    filename: str
    parsed_at: str
    summary: Dict[str, Any]

    def to_dict(self) -> Dict:
        return asdict(self)


class SummaryHistory:
    """TinyDB backed history of parsed uploads"""

    def __init__(self, db: TinyDB = None):
        if db is None:
            db_path = config.DATA_DIR / "summary_history.json"
            db_path.parent.mkdir(parents=True, exist_ok=True)
            db = TinyDB(str(db_path))
        self.db = db
        self.table = db.table('summaries')

    def __len__(self) -> int:
        return len(self.table)

    def get(self, sha256: str) -> Optional[Dict]:
        Record = Query()
        return self.table.get(Record.sha256 == sha256)

    def record(self, record: SummaryRecord) -> bool:
        """Store a record; returns False if these bytes were already recorded"""
        if self.get(record.sha256) is not None:
            logger.debug(f"Upload {record.sha256[:12]} already in history")
            return False
        self.table.insert(record.to_dict())
        logger.info(f"Recorded summary for {record.filename} ({record.sha256[:12]})")
        return True

    def recent(self, limit: int = 20) -> List[Dict]:
        """Most recently parsed first"""
        docs = sorted(self.table.all(), key=lambda d: (d['parsed_at'], d.doc_id), reverse=True)
        return [dict(doc) for doc in docs[:limit]]


_history: Optional[SummaryHistory] = None
_parser: Optional[EVTCParser] = None


def get_summary_history() -> SummaryHistory:
    global _history
    if _history is None:
        _history = SummaryHistory()
    return _history


def get_parser() -> EVTCParser:
    global _parser
    if _parser is None:
        _parser = EVTCParser()
    return _parser


def summarize_bytes(data: bytes, parser: EVTCParser = None) -> Dict[str, Any]:
    """Parse raw or archived EVTC bytes into the summary document"""
    summary = (parser or get_parser()).parse_bytes(data)
    return summary_to_dict(summary)


async def summarize_upload(filename: str, data: bytes,
                           history: SummaryHistory = None,
                           parser: EVTCParser = None) -> Dict[str, Any]:
    """
    Summarize an uploaded log and record it in the history

    Args:
        filename: Name the file was uploaded as
        data: File content
        history: History to record into, defaults to the process-wide one
        parser: Parser to use, defaults to the process-wide one

    Returns:
        The summary document

    Raises:
        EVTCError: If the log cannot be parsed
    """
    if history is None:
        history = get_summary_history()
    digest = hashlib.sha256(data).hexdigest()

    document = await run_in_threadpool(summarize_bytes, data, parser)

    history.record(SummaryRecord(
        sha256=digest,
        filename=filename,
        parsed_at=datetime.now().isoformat(),
        summary=document,
    ))
    return document
