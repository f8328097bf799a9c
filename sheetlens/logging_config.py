"""
Strukturerad JSON-loggning för SheetLens.

Använder python-json-logger för att producera maskinläsbara loggar.

Varje loggpost innehåller:
  - timestamp  : ISO 8601 UTC
  - level      : DEBUG / INFO / WARNING / ERROR / CRITICAL
  - logger     : loggerns namn (t.ex. "sheetlens.uploads", "uvicorn.error")
  - message    : loggmeddelandet
  - service    : "sheetlens" (statisk identifierare för filtrering)
  - environment: från env-variabeln ENVIRONMENT (default: "production")
  - + eventuella extra-fält som skickas med logger.info(..., extra={...})
"""

import logging
import logging.config
import os

from pythonjsonlogger.jsonlogger import JsonFormatter  # type: ignore[import-untyped]


class SheetLensJsonFormatter(JsonFormatter):
    """Lägger till statiska fält som service och environment på varje post."""

    _service = "sheetlens"
    _environment = os.getenv("ENVIRONMENT", "production")

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = self._service
        log_record["environment"] = self._environment
        # Byt namn på Pythons standardfält till mer läsbara nycklar
        log_record["level"] = log_record.pop("levelname", record.levelname)
        log_record["logger"] = log_record.pop("name", record.name)


# Loggers som skriver direkt till JSON-handlern på applikationens nivå
_APP_LOGGERS = ("sheetlens", "uvicorn", "uvicorn.error", "uvicorn.access")
# Pratiga biblioteksloggers som bara släpps igenom från WARNING
_QUIET_LOGGERS = ("pymongo", "motor", "firebase_admin")

_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_logging_config(level: str) -> dict:
    """Bygg dictConfig-strukturen för en given loggningsnivå."""
    loggers = {name: {"level": level} for name in _APP_LOGGERS}
    loggers.update({name: {"level": "WARNING"} for name in _QUIET_LOGGERS})
    for options in loggers.values():
        options.update(handlers=["json"], propagate=False)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": SheetLensJsonFormatter,
                "fmt": _JSON_FORMAT,
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "rename_fields": {"asctime": "timestamp"},
            },
        },
        "handlers": {
            "json": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["json"], "level": level},
        "loggers": loggers,
    }


def setup_logging(level: str | None = None) -> None:
    """
    Konfigurera root logger och applikationens loggers med JSON-format.

    Anropas en gång vid applikationsstart. Nivån tas från argumentet,
    annars från LOG_LEVEL, annars "INFO".
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.config.dictConfig(build_logging_config(log_level))
