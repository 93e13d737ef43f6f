"""Configuration and logging setup for Pixel Sprite Studio."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from tqdm import tqdm
from .constants import MAX_TEXTURE_SIZE, THUMBNAIL_MAX_SIZE

log = logging.getLogger(__name__)


class TqdmLoggingHandler(logging.StreamHandler):
    """Logging handler that uses tqdm.write() to avoid breaking progress bars."""
    
    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg)
        except Exception:
            self.handleError(record)


def setup_logging(debug: bool = False):
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='[%(levelname).1s] %(message)s' if debug else '%(message)s',
        handlers=[TqdmLoggingHandler()]
    )


@dataclass
class Config:
    """Global configuration."""
    debug: bool = False
    output_dir: Path = field(default_factory=lambda: Path("."))
    show_progress: bool = False  # tqdm bar while exporting every animation
    atomic_writes: bool = False  # Write to a temp file and rename on success
    mirror_missing_rotations: bool = False  # Flip the mirror-angle artwork when a rotation is blank
    thumbnail_max_size: int = THUMBNAIL_MAX_SIZE
    max_texture_size: int = MAX_TEXTURE_SIZE
    indent: int = 2  # JSON indentation for project documents and sidecars


# Global config instance
_config = Config()


def get_config() -> Config:
    """Get global config instance."""
    return _config


def reset_config() -> Config:
    """Restore default configuration. Returns the new instance."""
    global _config
    _config = Config()
    return _config
