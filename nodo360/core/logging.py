import sys

from loguru import logger

from nodo360.core.settings import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str | None = None) -> None:
    """Instala el sink de stderr con el nivel configurado."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        backtrace=False,
        diagnose=False,
    )


def short_id(value) -> str:
    """Recorta un id de usuario para los logs (8 caracteres + ...)."""
    return f"{str(value)[:8]}..." if value else "anon"
