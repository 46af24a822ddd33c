from .file import open_output
from .log_writer import LogWriter, start_log
