"""Media tooling for the Pihla Folk website: image optimization, backups and layout migration."""

from .config import PipelineConfig

__all__ = ["PipelineConfig"]
__version__ = "0.3.0"
