from .processing_config import ProcessingConfig

__all__ = ["ProcessingConfig"]
