"""
Structured logging configuration for EVTC Summary
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

import config

_configured = set()


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output"""
    
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'
    
    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logger(name: str, level: int = None) -> logging.Logger:
    """
    Setup a logger with both file and console handlers
    
    Args:
        name: Logger name (usually module name)
        level: Console logging level, defaults to EVTC_LOG_LEVEL
        
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    
    # Avoid duplicate handlers
    if logger.handlers:
        return logger
    
    if level is None:
        level = logging.getLevelName(config.LOG_LEVEL)
        if not isinstance(level, int):
            level = logging.INFO
    
    logger.setLevel(logging.DEBUG)
    
    # File handler with rotation (10MB max, keep 5 backups)
    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        config.LOGS_DIR / f"{name}.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    
    # Console output goes to stderr so CLI results on stdout stay clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    ))
    
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    _configured.add(name)
    
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger for a specific module
    
    Args:
        name: Logger name
        
    Returns:
        Logger instance
    """
    return setup_logger(name)


def set_console_level(level) -> None:
    """Change the console level of every logger created by setup_logger"""
    for name in _configured:
        for handler in logging.getLogger(name).handlers:
            if not isinstance(handler, RotatingFileHandler):
                handler.setLevel(level)
