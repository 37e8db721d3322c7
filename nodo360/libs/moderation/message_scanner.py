"""
Detección automática de señales de moderación en mensajes privados.

Solo se guarda un hash de la evidencia, nunca el contenido.
"""
import datetime
import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from nodo360.libs.formats.datetime import now as get_now

INVITE_LINKS = re.compile(
    r"(t\.me/|telegram\.me/|discord\.gg/|discord\.com/invite/|linktr\.ee/|wa\.me/"
    r"|bit\.ly/|tinyurl\.com/|goo\.gl/|ow\.ly/|cutt\.ly/|rebrand\.ly/)",
    re.IGNORECASE,
)

EXTERNAL_LINKS = re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE)

TRADING_PROMO = re.compile(
    r"(se[ñn]ales?\s*(de\s*)?(trading|cripto|forex)"
    r"|grupo\s*(de\s*)?vip"
    r"|rentabilidad\s*(garantizada|asegurada)"
    r"|roi\s*\d+\s*%"
    r"|copy\s*trading"
    r"|pump\s*(and\s*)?dump"
    r"|ganancias\s*(aseguradas|garantizadas)"
    r"|invierte\s*ahora"
    r"|duplica\s*tu\s*(dinero|capital)"
    r"|forex\s*signals?"
    r"|mi\s*c[oó]digo\s*(de\s*)?(referido|descuento)"
    r"|usa\s*mi\s*(link|enlace)"
    r"|\d+%\s*(de\s*)?(ganancia|retorno|profit)\s*(diario|semanal|mensual))",
    re.IGNORECASE,
)

SPAM_PATTERNS = re.compile(
    r"(ganar\s*dinero\s*f[aá]cil"
    r"|trabaja\s*desde\s*casa"
    r"|ingresos\s*pasivos\s*(garantizados|sin\s*esfuerzo)"
    r"|[uú]nete\s*a\s*mi\s*grupo"
    r"|env[ií]ame\s*(mensaje|dm)\s*para\s*(m[aá]s\s*)?info"
    r"|oportunidad\s*[uú]nica"
    r"|no\s*te\s*lo\s*pierdas"
    r"|plazas\s*limitadas)",
    re.IGNORECASE,
)

# BTC (bech32 y legacy) y direcciones EVM
CRYPTO_ADDRESSES = re.compile(
    r"(bc1[a-zA-HJ-NP-Z0-9]{39,59}|[13][a-km-zA-HJ-NP-Z1-9]{25,34}|0x[a-fA-F0-9]{40})"
)

DOMAIN = re.compile(r"([a-z0-9-]+\.[a-z]{2,})", re.IGNORECASE)

SAFE_DOMAINS = ("nodo360.com", "youtube.com", "youtu.be", "github.com")


@dataclass
class MessageFlag:
    type: str
    severity: int  # 1-5
    evidence_hash: str
    evidence_meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScanResult:
    flags: List[MessageFlag]

    @property
    def has_flags(self) -> bool:
        return bool(self.flags)

    @property
    def max_severity(self) -> int:
        return max((f.severity for f in self.flags), default=0)


def hash_evidence(text: str) -> str:
    return hashlib.sha256(text.lower().encode("utf-8")).hexdigest()[:16]


def _matches(pattern: re.Pattern, content: str) -> List[str]:
    return [m.group(0) for m in pattern.finditer(content)]


def scan_message(content: str) -> ScanResult:
    flags: List[MessageFlag] = []
    detected_at = get_now().isoformat()

    # 1️⃣ Invitaciones / acortadores (crítico)
    invites = _matches(INVITE_LINKS, content)
    if invites:
        domains = []
        for m in invites:
            found = DOMAIN.search(m)
            domain = found.group(1) if found else "unknown"
            if domain not in domains:
                domains.append(domain)
        flags.append(
            MessageFlag(
                "invite_link",
                5,
                hash_evidence(",".join(invites)),
                {"domains": domains, "count": len(invites), "detected_at": detected_at},
            )
        )

    # 2️⃣ Promoción de trading
    trading = _matches(TRADING_PROMO, content)
    if trading:
        flags.append(
            MessageFlag(
                "trading_promo",
                4,
                hash_evidence(",".join(trading)),
                {"keyword_count": len(trading), "detected_at": detected_at},
            )
        )

    # 3️⃣ Spam
    spam = _matches(SPAM_PATTERNS, content)
    if spam:
        flags.append(
            MessageFlag(
                "spam_pattern",
                3,
                hash_evidence(",".join(spam)),
                {"pattern_count": len(spam), "detected_at": detected_at},
            )
        )

    # 4️⃣ Enlaces externos, solo si no hubo invitaciones
    links = _matches(EXTERNAL_LINKS, content)
    if links and not invites:
        suspicious = [link for link in links if not any(s in link for s in SAFE_DOMAINS)]
        if suspicious:
            flags.append(
                MessageFlag(
                    "external_link",
                    2,
                    hash_evidence(",".join(suspicious)),
                    {
                        "link_count": len(suspicious),
                        "total_links": len(links),
                        "detected_at": detected_at,
                    },
                )
            )

    # 5️⃣ Direcciones de wallets
    addresses = _matches(CRYPTO_ADDRESSES, content)
    if addresses:
        flags.append(
            MessageFlag(
                "crypto_address",
                4,
                hash_evidence(",".join(addresses)),
                {"address_count": len(addresses), "detected_at": detected_at},
            )
        )

    return ScanResult(flags)


def _words(text: str) -> set:
    return {w for w in text.split() if len(w) > 2}


def similarity(a: str, b: str) -> float:
    """Jaccard sobre palabras de más de 2 caracteres."""
    words_a, words_b = _words(a), _words(b)
    if not words_a and not words_b:
        return 1.0
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def check_repeat_message(
    previous: Iterable[tuple[str, datetime.datetime]],
    current_content: str,
    threshold_minutes: int = 10,
    similarity_threshold: float = 0.8,
    reference: Optional[datetime.datetime] = None,
) -> Dict[str, Any]:
    """`previous`: (contenido, created_at). Repetición = 2 mensajes previos parecidos."""
    cutoff = (reference or get_now()) - datetime.timedelta(minutes=threshold_minutes)
    current = current_content.lower().strip()

    repeat_count = sum(
        1
        for content, created_at in previous
        if created_at >= cutoff
        and similarity(current, content.lower().strip()) >= similarity_threshold
    )
    return {"is_repeat": repeat_count >= 2, "repeat_count": repeat_count}


def check_mass_dm(
    initiated_at: Iterable[datetime.datetime],
    threshold_minutes: int = 60,
    threshold_count: int = 5,
    reference: Optional[datetime.datetime] = None,
) -> Dict[str, Any]:
    """`initiated_at`: fechas de las conversaciones abiertas por el usuario."""
    cutoff = (reference or get_now()) - datetime.timedelta(minutes=threshold_minutes)
    count = sum(1 for created_at in initiated_at if created_at > cutoff)
    return {"is_mass_dm": count >= threshold_count, "conversation_count": count}
