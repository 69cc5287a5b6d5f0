from core.transfers.archive_builder import ArchiveBuilder
from core.transfers.progress import NullProgressSink, ProgressSink, ProgressTopic, QtProgressEmitter
from core.transfers.transfer_engine import TransferEngine
from core.transfers.transfer_models import CHUNK_SIZE, ArchiveEntry, ArchivePlan, TransferResult

__all__ = [
    "ArchiveBuilder",
    "ArchiveEntry",
    "ArchivePlan",
    "CHUNK_SIZE",
    "NullProgressSink",
    "ProgressSink",
    "ProgressTopic",
    "QtProgressEmitter",
    "TransferEngine",
    "TransferResult",
]
