from datetime import datetime, timezone
from zoneinfo import ZoneInfo

# Zona horaria de la plataforma para textos mostrados (emails, notificaciones)
MADRID_TIMEZONE = ZoneInfo("Europe/Madrid")


def now() -> datetime:
    """Datetime actual en UTC sin tzinfo (naive).
    Es la función estándar para columnas DateTime de todo el proyecto.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_tzinfo() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """Convierte un datetime (con o sin tzinfo) a UTC y elimina tzinfo.
    - None → None
    - Con timezone → se normaliza a UTC
    - Sin timezone → se asume que ya es UTC
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def format_madrid(dt: datetime | None = None) -> str:
    """Fecha legible en hora de Madrid, p. ej. '19/10/2026, 18:05:00'."""
    dt = dt or now()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(MADRID_TIMEZONE).strftime("%d/%m/%Y, %H:%M:%S")


def seconds_until(dt: datetime | None, reference: datetime | None = None) -> int:
    """Segundos que faltan hasta `dt` (0 si ya pasó o no hay fecha)."""
    if dt is None:
        return 0
    reference = reference or now()
    delta = (to_utc_naive(dt) - reference).total_seconds()
    return int(delta) if delta > 0 else 0
