import datetime
import hashlib

from nodo360.libs.moderation.message_scanner import (
    check_mass_dm,
    check_repeat_message,
    hash_evidence,
    scan_message,
    similarity,
)

NOW = datetime.datetime(2026, 10, 19, 12, 0, 0)


def _types(result):
    return {f.type: f.severity for f in result.flags}


def test_clean_message_has_no_flags():
    result = scan_message("Hola, ¿me ayudas con el módulo 2 del curso de Bitcoin?")
    assert not result.has_flags
    assert result.max_severity == 0


def test_invite_link_is_critical_and_suppresses_external_link():
    result = scan_message("Entra aquí https://t.me/grupo_secreto y en discord.gg/abc")

    types = _types(result)
    assert types == {"invite_link": 5}
    meta = result.flags[0].evidence_meta
    assert meta["count"] == 2
    assert meta["domains"] == ["t.me", "discord.gg"]


def test_trading_and_spam_phrases():
    result = scan_message(
        "Señales de trading con rentabilidad garantizada. ¡Plazas limitadas!"
    )
    types = _types(result)
    assert types["trading_promo"] == 4
    assert types["spam_pattern"] == 3
    assert result.max_severity == 4


def test_external_links_outside_safe_domains():
    safe = scan_message("Mira https://www.youtube.com/watch?v=1 y https://github.com/nodo360")
    assert not safe.has_flags

    result = scan_message("Mira https://example.com/oferta y https://youtu.be/x")
    flag = result.flags[0]
    assert flag.type == "external_link"
    assert flag.severity == 2
    assert flag.evidence_meta["link_count"] == 1
    assert flag.evidence_meta["total_links"] == 2


def test_crypto_address_is_flagged():
    result = scan_message("Envía a 0x52908400098527886E0F7030069857D2E4169EE7 ya")
    assert _types(result) == {"crypto_address": 4}


def test_evidence_is_a_short_hash_not_the_content():
    content = "invierte ahora"
    flag = scan_message(content).flags[0]

    assert flag.evidence_hash == hashlib.sha256(content.encode()).hexdigest()[:16]
    assert content not in str(flag.evidence_meta)
    assert hash_evidence("ABC") == hash_evidence("abc")


def test_similarity_ignores_short_words():
    assert similarity("a b c", "x y") == 1.0
    assert similarity("hola mundo", "") == 0.0
    assert similarity("compra este curso hoy", "compra este curso ahora") == 0.6


def test_repeat_message_needs_two_recent_matches():
    text = "únete a mi grupo de señales"
    recent = NOW - datetime.timedelta(minutes=2)
    old = NOW - datetime.timedelta(minutes=30)

    one = check_repeat_message([(text, recent), (text, old)], text, reference=NOW)
    assert one == {"is_repeat": False, "repeat_count": 1}

    two = check_repeat_message([(text, recent), (text.upper(), recent)], text, reference=NOW)
    assert two == {"is_repeat": True, "repeat_count": 2}


def test_mass_dm_threshold():
    recent = [NOW - datetime.timedelta(minutes=m) for m in (1, 5, 10, 20)]
    assert check_mass_dm(recent, reference=NOW)["is_mass_dm"] is False

    recent.append(NOW - datetime.timedelta(minutes=59))
    assert check_mass_dm(recent, reference=NOW) == {"is_mass_dm": True, "conversation_count": 5}

    stale = [NOW - datetime.timedelta(minutes=90)] * 10
    assert check_mass_dm(stale, reference=NOW)["conversation_count"] == 0
