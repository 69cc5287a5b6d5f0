from core.fileops.file_ops_service import FileOpsService

__all__ = ["FileOpsService"]
