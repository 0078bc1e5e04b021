"""
Logging and Error Handling System

Centralized logging configuration for specfetch plus an error tracker that
collects per-entry failures so they can be summarized at the end of a run.
"""

import logging
import logging.handlers
import sys
import threading
from datetime import datetime
from typing import Optional, Dict, Any, List, Union
import traceback
from pathlib import Path


APP_NAME = "specfetch"


class SpecFetchLogger:
    """
    Configures the ``specfetch`` logger hierarchy.
    
    Console output is always on; rotating log files are only written when a
    log directory is given, so a plain run leaves nothing behind but the
    documents themselves.
    """
    
    def __init__(self, log_dir: Optional[Union[str, Path]] = None, app_name: str = APP_NAME):
        """
        Initialize the logging system.
        
        Args:
            log_dir: Directory to store log files (None disables file logging)
            app_name: Name of the root logger
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.app_name = app_name
        self.loggers: Dict[str, logging.Logger] = {}
    
    def setup_logger(self, level: int = logging.INFO) -> logging.Logger:
        """
        Set up the main logger with console and (optional) file handlers.
        
        Args:
            level: Console logging level (default: INFO)
            
        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(self.app_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        
        # Re-initialization replaces handlers instead of stacking them
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        
        detailed_formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        )
        
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)
        
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / f"{self.app_name}.log",
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            
            error_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / f"{self.app_name}_errors.log",
                maxBytes=5*1024*1024,  # 5MB
                backupCount=3,
                encoding='utf-8'
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(detailed_formatter)
            
            logger.addHandler(file_handler)
            logger.addHandler(error_handler)
        
        self.loggers['main'] = logger
        return logger
    
    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a child logger for a component.
        
        Args:
            name: Name of the component
            
        Returns:
            Logger instance for the component
        """
        full_name = name if name.startswith(self.app_name) else f"{self.app_name}.{name}"
        if full_name not in self.loggers:
            self.loggers[full_name] = logging.getLogger(full_name)
        return self.loggers[full_name]


class ErrorTracker:
    """
    Tracks errors that occur while fetching manifest entries.
    
    Thread-safe: entries running in parallel workers report into one tracker.
    """
    
    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.errors: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
    
    def log_error(self,
                  error: BaseException,
                  context: str = None,
                  url: str = None,
                  additional_info: Dict[str, Any] = None) -> str:
        """
        Log an error with context information.
        
        Args:
            error: The exception that occurred
            context: Context where the error occurred (usually the entry name)
            url: Source being fetched when the error occurred
            additional_info: Additional information about the error
            
        Returns:
            Error ID for tracking
        """
        with self._lock:
            error_id = f"ERR_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.errors):03d}"
            error_data = {
                'id': error_id,
                'timestamp': datetime.now(),
                'type': type(error).__name__,
                'message': str(error),
                'context': context,
                'url': url,
                'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
                'additional_info': additional_info or {}
            }
            self.errors.append(error_data)
        
        log_message = f"[{error_id}] {error_data['type']}: {error_data['message']}"
        if context:
            log_message += f" (Context: {context})"
        if url:
            log_message += f" (URL: {url})"
        
        self.logger.error(log_message)
        self.logger.debug(f"[{error_id}] Full traceback:\n{error_data['traceback']}")
        
        return error_id
    
    def save_error_report(self, output_path: Union[str, Path]):
        """
        Save a detailed error report to a file.
        
        Args:
            output_path: Path where the report should be saved
        """
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("SPECFETCH ERROR REPORT\n")
            f.write("=" * 50 + "\n\n")
            f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
            f.write(f"Total Errors: {len(self.errors)}\n\n")
            
            if self.errors:
                f.write("ERRORS:\n")
                f.write("-" * 30 + "\n")
                for error in self.errors:
                    f.write(f"\n[{error['id']}] {error['timestamp']}\n")
                    f.write(f"Type: {error['type']}\n")
                    f.write(f"Message: {error['message']}\n")
                    if error['context']:
                        f.write(f"Context: {error['context']}\n")
                    if error['url']:
                        f.write(f"URL: {error['url']}\n")
                    f.write(f"Traceback:\n{error['traceback']}\n")
                    f.write("-" * 50 + "\n")
        
        self.logger.info(f"Error report saved to: {output_path}")


# Global logger instance
_logger_instance: Optional[SpecFetchLogger] = None


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.
    
    Args:
        name: Name of the component (optional)
        
    Returns:
        Logger instance
    """
    global _logger_instance
    
    if _logger_instance is None:
        _logger_instance = SpecFetchLogger()
    
    return _logger_instance.get_logger(name or 'main')


def initialize_logging(log_dir: Optional[Union[str, Path]] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Initialize the global logging system.
    
    Args:
        log_dir: Directory for log files (None: console only)
        level: Console logging level
    """
    global _logger_instance
    _logger_instance = SpecFetchLogger(log_dir)
    logger = _logger_instance.setup_logger(level)
    return logger
