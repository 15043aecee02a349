"""Engine components orchestrating fetch → parse → filter → reconcile."""

from .arxiv import ArxivClient
from .cancellation import CancelToken
from .dedup import CrossSourceDeduplicator, extract_candidates
from .errors import Cancelled, DigestError, EntryDropped, FetchExhausted, MalformedDocument, ParseError
from .fetcher import FetchRequest, FetchResponse, Fetcher
from .parser import DocumentKind, Parser
from .reconcile import Reconciler
from .records import Candidate, DigestResult, Paper, canonical_id
from .retry import RetryPolicy
from .supervisor import RunSupervisor
from .window import DateWindow

__all__ = [
    "ArxivClient",
    "CancelToken",
    "Cancelled",
    "Candidate",
    "CrossSourceDeduplicator",
    "DateWindow",
    "DigestError",
    "DigestResult",
    "DocumentKind",
    "EntryDropped",
    "FetchExhausted",
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "MalformedDocument",
    "Paper",
    "ParseError",
    "Parser",
    "Reconciler",
    "RetryPolicy",
    "RunSupervisor",
    "canonical_id",
    "extract_candidates",
]
