"""Renderização das mensagens enviadas ao chat (modo HTML do transporte)."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from vigia_core.domain.contracts import (
    AUTHOR_UNKNOWN,
    GENRES_PENDING,
    GENRES_UNSPECIFIED,
    IncomingMessage,
    Listing,
    PromotionListing,
)
from vigia_core.infrastructure.normalizers.text_cleaner import clip, escape_html
from vigia_core.infrastructure.promotions.offers import parse_instant

DESCRIPTION_PREVIEW = 200
GENRES_LOADING_LABEL = "Carregando..."
GENRES_UNSPECIFIED_LABEL = "Não informado"
AUTHOR_UNKNOWN_LABEL = "Desconhecido"
END_DATE_FORMAT = "%d.%m.%Y %H:%M UTC"


def genres_label(genres: Sequence[str]) -> str:
    if GENRES_PENDING in genres:
        return GENRES_LOADING_LABEL
    visible = [genre for genre in genres if genre and genre != GENRES_UNSPECIFIED]
    return ", ".join(visible) if visible else GENRES_UNSPECIFIED_LABEL


def author_label(author: str) -> str:
    if not author or author == AUTHOR_UNKNOWN:
        return AUTHOR_UNKNOWN_LABEL
    return author


def page_footer(index: int, total: int) -> str:
    return f"📄 Página {index + 1} de {total}"


def format_listing(listing: Listing, *, description_limit: int | None = DESCRIPTION_PREVIEW) -> str:
    """Mensagem HTML de uma entrada do catálogo.

    ``description_limit`` controla a prévia da descrição; ``None`` mantém a
    descrição inteira (o corte fica a cargo de ``fit_message``).
    """

    lines = [
        f"🎮 <b>{escape_html(listing.title)}</b>",
        "",
        f"📅 Atualizado: {escape_html(listing.update_date)}",
        f"🎯 Gêneros: {escape_html(genres_label(listing.genres))}",
        f"👤 Autor: {escape_html(author_label(listing.author))}",
    ]
    if listing.description:
        preview = clip(listing.description, description_limit)
        if len(preview) < len(listing.description):
            preview += "..."
        lines.extend(["", f"📝 {escape_html(preview)}"])
    lines.extend(["", f'🔗 <a href="{escape_html(listing.url)}">Mais detalhes</a>'])
    return "\n".join(lines)


def format_listing_plain(listing: Listing, footer: str | None = None) -> str:
    lines = [
        f"🎮 {listing.title}",
        "",
        f"📅 Atualizado: {listing.update_date}",
        f"🎯 Gêneros: {genres_label(listing.genres)}",
        f"👤 Autor: {author_label(listing.author)}",
        "",
        f"🔗 {listing.url}",
    ]
    if footer:
        lines.extend(["", footer])
    return "\n".join(lines)


def format_new_listing(listing: Listing) -> str:
    return f"🆕 <b>Novo jogo no catálogo!</b>\n\n{format_listing(listing)}"


def _format_end_date(value: str) -> str:
    parsed = parse_instant(value)
    return parsed.strftime(END_DATE_FORMAT) if parsed else value


def format_promotion(promotion: PromotionListing) -> str:
    lines = [f"🎁 <b>{escape_html(promotion.title)}</b>", ""]
    if promotion.original_price:
        lines.append(f"💰 Preço original: <s>{escape_html(promotion.original_price)}</s> → Grátis")
    lines.append(f"⏳ Grátis até: {escape_html(_format_end_date(promotion.end_date))}")
    if promotion.publisher:
        lines.append(f"🏢 Publicadora: {escape_html(promotion.publisher)}")
    if promotion.developer and promotion.developer != promotion.publisher:
        lines.append(f"🛠 Desenvolvedora: {escape_html(promotion.developer)}")
    if promotion.description:
        lines.extend(["", f"📝 {escape_html(clip(promotion.description, DESCRIPTION_PREVIEW, ellipsis='...'))}"])
    lines.extend(["", f'🔗 <a href="{escape_html(promotion.url)}">Resgatar na loja</a>'])
    return "\n".join(lines)


def format_promotion_plain(promotion: PromotionListing) -> str:
    return (
        f"🎁 {promotion.title}\n\n"
        f"⏳ Grátis até: {_format_end_date(promotion.end_date)}\n\n"
        f"🔗 {promotion.url}"
    )


def format_new_promotion(promotion: PromotionListing) -> str:
    return f"🆕 <b>Nova oferta gratuita na loja!</b>\n\n{format_promotion(promotion)}"


def format_check_started(checked_at: datetime) -> str:
    return (
        "🔍 <b>Verificação automática de novos jogos</b>\n\n"
        f"⏰ Horário: {checked_at:%d.%m.%Y, %H:%M:%S}\n\n"
        "⏳ Iniciando a leitura do site..."
    )


def format_check_result(checked_at: datetime, new_count: int) -> str:
    if new_count:
        return (
            "✅ <b>Verificação concluída!</b>\n\n"
            f"🆕 Novos jogos encontrados: <b>{new_count}</b>\n"
            f"⏰ Horário: {checked_at:%d.%m.%Y, %H:%M:%S}"
        )
    return (
        "✅ <b>Verificação concluída</b>\n\n"
        "📭 Nenhum jogo novo encontrado\n"
        f"⏰ Horário: {checked_at:%d.%m.%Y, %H:%M:%S}"
    )


def format_check_failed(checked_at: datetime, error: str) -> str:
    return (
        "❌ <b>Erro ao verificar novos jogos</b>\n\n"
        f"⏰ Horário: {checked_at:%d.%m.%Y, %H:%M:%S}\n\n"
        f"🔴 {escape_html(error)}"
    )


WELCOME_MESSAGE = """👋 Olá! Eu acompanho jogos gratuitos no catálogo e na loja.

📋 <b>Comandos disponíveis:</b>
/games - Mostrar os 10 jogos mais recentes da página inicial
/games &lt;número&gt; - Mostrar jogos de outra página (ex.: /games 2)
/newgames - Verificar novos jogos agora
/epic - Mostrar as ofertas gratuitas atuais da loja
/chatid - Mostrar o ID do chat para notificações
/help - Mostrar a ajuda

A verificação automática roda conforme o agendamento configurado."""

HELP_MESSAGE = """📚 <b>Ajuda dos comandos:</b>

/games - Lista os 10 jogos mais recentes da página inicial do catálogo
/games &lt;número&gt; - Lista os jogos da página indicada (ex.: /games 2 abre /page/2)

/newgames - Força uma nova verificação e mostra os 5 jogos mais recentes

/epic - Mostra os jogos gratuitos da semana na loja

/chatid - Mostra o ID deste chat (para configurar as notificações)

/help - Mostra esta ajuda

<b>Notificações automáticas:</b>
Defina NOTIFICATION_CHAT_ID (e opcionalmente NOTIFICATION_TOPIC_ID) para receber os novos jogos encontrados na verificação agendada."""

CHAT_TYPE_LABELS = {"private": "Chat privado", "group": "Grupo", "supergroup": "Grupo"}


def format_chat_info(message: IncomingMessage) -> str:
    if message.chat_type == "private":
        title = message.sender_name or "Usuário"
    else:
        title = message.chat_title or "Chat"
    chat_type = CHAT_TYPE_LABELS.get(message.chat_type, "Canal")
    in_topic = message.message_thread_id is not None

    parts = [
        "📋 <b>Informações do chat:</b>\n",
        f"🆔 <b>Chat ID:</b> <code>{message.chat_id}</code>",
        f"👤 <b>Nome:</b> {escape_html(title)}",
        f"📝 <b>Tipo:</b> {chat_type}",
    ]
    if in_topic:
        parts.append(
            f"\n📌 <b>Topic ID:</b> <code>{message.message_thread_id}</code>\n"
            f"💬 <b>Tópico:</b> {escape_html(message.topic_name or 'Sem nome')}"
        )
    parts.append(
        "\n<b>Como usar:</b>\n"
        "Copie o Chat ID acima e adicione ao ambiente:\n"
        f"<code>NOTIFICATION_CHAT_ID={message.chat_id}</code>"
    )
    if in_topic:
        parts.append(
            "\nPara enviar neste tópico, adicione também:\n"
            f"<code>NOTIFICATION_TOPIC_ID={message.message_thread_id}</code>"
        )
    destination = "neste tópico" if in_topic else "neste chat"
    parts.append(f"\nDepois reinicie o bot e as notificações chegarão {destination}.")
    return "\n".join(parts)


__all__ = [
    "HELP_MESSAGE",
    "WELCOME_MESSAGE",
    "author_label",
    "format_chat_info",
    "format_check_failed",
    "format_check_result",
    "format_check_started",
    "format_listing",
    "format_listing_plain",
    "format_new_listing",
    "format_new_promotion",
    "format_promotion",
    "format_promotion_plain",
    "genres_label",
    "page_footer",
]
