# nodo360/services/shares/discord.py
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Request
from loguru import logger

from nodo360.core.settings import settings
from nodo360.libs.formats.datetime import format_madrid, now_tzinfo

# Colores de los embeds (enteros RGB)
COLORS = {
    "brand": 0xF7931A,
    "success": 0x22C55E,
    "info": 0x3B82F6,
    "gold": 0xEAB308,
    "announcement": 0x8B5CF6,
}


def build_embed(
    title: str,
    description: str,
    color: int = COLORS["brand"],
    url: Optional[str] = None,
    fields: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Embed de Discord con título, descripción, color, campos y pie con la hora de Madrid."""
    embed: Dict[str, Any] = {
        "title": title[:256],
        "description": description[:4096],
        "color": color,
        "footer": {"text": f"Nodo360 • {format_madrid()}"},
        "timestamp": now_tzinfo().isoformat(),
    }
    if url:
        embed["url"] = url
    if fields:
        embed["fields"] = [
            {
                "name": str(f["name"])[:256],
                "value": str(f["value"])[:1024],
                "inline": bool(f.get("inline", False)),
            }
            for f in fields[:25]
        ]
    return embed


class DiscordNotifier:
    """
    Webhook de Discord. Sin DISCORD_WEBHOOK_URL no hace nada.
    Los fallos se registran y nunca se propagan.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.webhook_url = settings.DISCORD_WEBHOOK_URL if webhook_url is None else webhook_url
        self.http = http

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send(self, embed: Dict[str, Any]) -> bool:
        if not self.enabled:
            logger.debug("[discord] Webhook no configurado, se omite '{}'", embed.get("title"))
            return False

        payload = {"username": "Nodo360", "embeds": [embed]}
        try:
            if self.http is not None:
                res = await self.http.post(self.webhook_url, json=payload, timeout=10)
            else:
                async with httpx.AsyncClient(timeout=10) as client:
                    res = await client.post(self.webhook_url, json=payload)
            res.raise_for_status()
            logger.info("✅ [discord] Enviado: {}", embed.get("title"))
            return True
        except httpx.HTTPError as e:
            logger.error("❌ [discord] Error enviando webhook: {}", e)
            return False

    # ==============================
    # 📢 EVENTOS
    # ==============================

    async def new_user(self, user_name: str) -> bool:
        return await self.send(
            build_embed(
                "👋 Nuevo usuario beta",
                f"**{user_name}** se ha unido a Nodo360.",
                COLORS["success"],
            )
        )

    async def course_completed(self, user_name: str, course_name: str) -> bool:
        return await self.send(
            build_embed(
                "🏆 Curso completado",
                f"**{user_name}** ha completado un curso.",
                COLORS["gold"],
                fields=[{"name": "Curso", "value": course_name}],
            )
        )

    async def new_proposal(self, title: str, url: str) -> bool:
        return await self.send(
            build_embed(
                "🗳️ Nueva propuesta de gobernanza",
                f"**{title}**\n¡Participa y vota!",
                COLORS["brand"],
                url=url,
            )
        )

    async def new_course(self, course_name: str, url: str) -> bool:
        return await self.send(
            build_embed(
                "📚 Nuevo curso disponible",
                f"Se ha publicado **{course_name}**.",
                COLORS["info"],
                url=url,
            )
        )

    async def announcement(self, title: str, message: str) -> bool:
        return await self.send(build_embed(f"📣 {title}", message, COLORS["announcement"]))


def get_discord_notifier(request: Request) -> DiscordNotifier:
    return DiscordNotifier(http=getattr(request.app.state, "http", None))
