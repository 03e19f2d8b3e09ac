from .chat_service import ChatService
from .dataset_catalog import SqlAlchemyDatasetCatalog, SqlAlchemyQueryExecutor

__all__ = ["ChatService", "SqlAlchemyDatasetCatalog", "SqlAlchemyQueryExecutor"]
