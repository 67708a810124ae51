# -*- coding: utf-8 -*-
"""
path_safety/utils.py

ユーティリティ:
- Logger: 標準出力とログファイルへの二重出力 (CLI 用)
- setup_logging: ルートロガーの設定
- SCRIPT_NAME: バージョン識別子
"""

import logging
import os
import sys
from datetime import datetime
from typing import TextIO, Union

SCRIPT_NAME = "path_safety"
SCRIPT_VERSION = f"{SCRIPT_NAME} v1.0"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Logger:
    """
    Dual-output writer for CLI runs.

    ターミナルとログファイルの両方に即時フラッシュで出力。
    """

    def __init__(self, filename: str, script_name: str = SCRIPT_VERSION, terminal: TextIO = None):
        self.terminal = terminal if terminal is not None else sys.stdout
        # buffering=1 for line buffering
        self.log = open(filename, 'w', encoding='utf-8', buffering=1)
        self.closed = False
        self.log.write(f"Safety Check Log - {script_name}\n")
        self.log.write(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        self.log.write("=" * 80 + "\n")
        self.flush()

    def write(self, message: str) -> None:
        if self.closed:
            return
        self.terminal.write(message)
        self.log.write(message)

    def flush(self) -> None:
        if not self.closed:
            self.terminal.flush()
            self.log.flush()
            os.fsync(self.log.fileno())

    def close(self) -> None:
        if not self.closed:
            self.flush()
            self.closed = True
            self.log.close()

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def setup_logging(level: Union[int, str] = logging.WARNING, stream: TextIO = None) -> logging.Logger:
    """
    Configure the package logger for CLI use.

    Args:
        level: ログレベル (名前または数値)
        stream: 出力先 (デフォルト: stderr)

    Returns:
        パッケージロガー
    """
    numeric_level = level
    if isinstance(level, str):
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Unknown log level: {level!r}")
    logger = logging.getLogger(SCRIPT_NAME)
    logger.setLevel(numeric_level)

    # Prevent duplicate handlers across re-runs.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)
    return logger
