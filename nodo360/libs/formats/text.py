import re
import unicodedata

SLUG_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def generate_slug(title: str, max_length: int = 80) -> str:
    """
    ✅ Genera un slug amigable a partir del título
    - Elimina tildes y la ñ → n
    - Conserva letras, números y guiones
    - En minúsculas
    """
    if not title:
        return ""

    # 1️⃣ Normalizar unicode (separar tildes)
    normalized = unicodedata.normalize("NFD", title)

    # 2️⃣ Eliminar marcas diacríticas
    no_accents = "".join(c for c in normalized if unicodedata.category(c) != "Mn")

    # 3️⃣ Minúsculas
    text = no_accents.lower()

    # 4️⃣ Espacios y caracteres especiales → guion
    text = re.sub(r"[^a-z0-9]+", "-", text)

    # 5️⃣ Quitar guiones extremos y repetidos
    text = re.sub(r"-{2,}", "-", text).strip("-")

    return text[:max_length].rstrip("-")


def is_valid_slug(value: str) -> bool:
    return bool(SLUG_PATTERN.match(value or ""))


def truncate(value: str | None, length: int) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value[:length] if value else None
