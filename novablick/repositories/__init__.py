from .dataset_repository import DatasetRepository

__all__ = ["DatasetRepository"]
