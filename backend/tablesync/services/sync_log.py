from __future__ import annotations

import logging


class SyncLog:
    """Diagnostic output for one sync run.

    Built once per run and handed to the job runner, pump, prober and
    dispatcher; `verbose` lines are only written when the run is in debug mode.
    """

    def __init__(self, debug: bool = False, logger: logging.Logger | None = None) -> None:
        self.debug = debug
        self._logger = logger or logging.getLogger("tablesync.sync")

    def line(self, msg: str, *args: object) -> None:
        self._logger.info(msg, *args)

    def verbose(self, msg: str, *args: object) -> None:
        if self.debug:
            self._logger.debug(msg, *args)

    def error(self, msg: str, *args: object, exc_info: bool = True) -> None:
        self._logger.error(msg, *args, exc_info=exc_info)
