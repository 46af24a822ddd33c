from .batch_buffer import BatchBuffer
from .logger import JsonFormatter, setup_logging

__all__ = [
	"BatchBuffer",
	"JsonFormatter",
	"setup_logging",
]
