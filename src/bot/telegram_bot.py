"""
Countdown Bot — Telegram Bot.

Telegram is the only user interface. Commands:

  /setdate                   pick a date with inline buttons
  /setdate YYYY-MM-DD HH:MM  type the date directly
  /timers                    list this chat's timers
  /cleartimer [id]           delete a timer

Handlers stay thin: date logic lives in src.core.date_picker, timer
lifecycle in TimerService / TimerScheduler.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)

from src.bot.callbacks import (
    CancelDelete,
    ChooseTimer,
    ConfirmDelete,
    PickComponent,
    decode,
    encode,
)
from src.config import settings
from src.core.countdown import format_event_date, format_remaining
from src.core.date_picker import (
    DateSelectionSession,
    SelectionKind,
    SessionStore,
    parse_direct_date,
)
from src.core.errors import DateValidationError, PermissionDeniedError, SelectionError
from src.core.texts import month_names, t
from src.ports.storage_port import StorageError

if TYPE_CHECKING:
    from telegram import CallbackQuery

    from src.core.timer_service import TimerService
    from src.data.models import Timer
    from src.ports.message_port import MessagePublisher
    from src.ports.storage_port import TimerStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores updates from users outside ALLOWED_USER_IDS.

    An empty allow-list means the bot is open to everyone.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        allowed = settings.ALLOWED_USER_IDS
        if allowed:
            user = update.effective_user
            if user is None or user.id not in allowed:
                uid = user.id if user else "unknown"
                logger.warning("Unauthorized access attempt from user_id=%s", uid)
                return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _locale() -> str:
    return settings.LOCALE


def _today() -> date:
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def _service(context: ContextTypes.DEFAULT_TYPE) -> TimerService:
    return context.bot_data["timers"]


def _sessions(context: ContextTypes.DEFAULT_TYPE) -> SessionStore:
    return context.bot_data["sessions"]


def _button_rows(
    buttons: list[InlineKeyboardButton], columns: int,
) -> list[list[InlineKeyboardButton]]:
    """Lay buttons out left to right, `columns` per row."""
    return [buttons[i:i + columns] for i in range(0, len(buttons), columns)]


_PROMPTS = {
    SelectionKind.YEAR: "pick_year",
    SelectionKind.MONTH: "pick_month",
    SelectionKind.DAY: "pick_day",
    SelectionKind.HOUR: "pick_hour",
    SelectionKind.MINUTE: "pick_minute",
}

_COLUMNS = {
    SelectionKind.YEAR: 3,
    SelectionKind.MONTH: 3,
    SelectionKind.DAY: 7,
    SelectionKind.HOUR: 6,
    SelectionKind.MINUTE: 4,
}


def _option_label(kind: SelectionKind, value: int) -> str:
    if kind is SelectionKind.MONTH:
        return month_names(_locale())[value - 1]
    if kind in (SelectionKind.HOUR, SelectionKind.MINUTE):
        return f"{value:02d}"
    return str(value)


def _picker_markup(session: DateSelectionSession, today: date) -> InlineKeyboardMarkup:
    """Keyboard for the session's next step."""
    kind = session.expected
    buttons = [
        InlineKeyboardButton(
            _option_label(kind, value),
            callback_data=encode(PickComponent(kind, value)),
        )
        for value in session.options(today)
    ]
    return InlineKeyboardMarkup(_button_rows(buttons, _COLUMNS[kind]))


def _confirm_markup(timer_id: str) -> InlineKeyboardMarkup:
    locale = _locale()
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(t("yes", locale), callback_data=encode(ConfirmDelete(timer_id))),
        InlineKeyboardButton(t("cancel", locale), callback_data=encode(CancelDelete())),
    ]])


async def _create_timer(
    context: ContextTypes.DEFAULT_TYPE, chat_id: int, event_date: datetime,
) -> Timer | None:
    """Create a timer and tell the chat how it went. None if it was refused."""
    locale = _locale()
    try:
        timer = await _service(context).create_timer(chat_id, event_date)
    except PermissionDeniedError as exc:
        await context.bot.send_message(chat_id=chat_id, text=t(exc.reason, locale))
        return None
    except StorageError as exc:
        logger.error("Timer creation failed in chat %d: %s", chat_id, exc)
        await context.bot.send_message(chat_id=chat_id, text=t("storage_failed", locale))
        return None

    await context.bot.send_message(
        chat_id=chat_id,
        text=t("event_set", locale, date=format_event_date(timer.event_date, timer.timezone)),
    )
    return timer


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(t("start", _locale()))


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(t("help", _locale()))


@authorized_only
async def cmd_setdate(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /setdate — open the picker, or create directly from the arguments."""
    chat_id = update.effective_chat.id

    if not context.args:
        session = _sessions(context).start(update.effective_user.id, chat_id)
        picker = await update.message.reply_text(
            t("pick_year", _locale()),
            reply_markup=_picker_markup(session, _today()),
        )
        session.message_id = picker.message_id
        return

    try:
        event_date = parse_direct_date(" ".join(context.args), settings.TIMEZONE)
    except DateValidationError as exc:
        logger.info("Rejected /setdate input in chat %d: %s", chat_id, exc)
        await update.message.reply_text(t("bad_format", _locale()))
        return

    await _create_timer(context, chat_id, event_date)


@authorized_only
async def cmd_timers(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /timers — list the chat's running timers."""
    locale = _locale()
    timers = _service(context).list_timers(update.effective_chat.id)
    if not timers:
        await update.message.reply_text(t("no_timers", locale))
        return

    now = datetime.now(ZoneInfo(settings.TIMEZONE))
    lines = [t("timers_header", locale)]
    for timer in timers:
        lines.append(t(
            "timer_line",
            locale,
            id=timer.id[:8],
            date=format_event_date(timer.event_date, timer.timezone),
            remaining=format_remaining(now, timer.event_date, timer.timezone, locale),
        ))
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_cleartimer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cleartimer [id] — delete by id, or offer the chat's timers as buttons."""
    locale = _locale()
    chat_id = update.effective_chat.id
    service = _service(context)

    if context.args:
        timer = service.find_timer(chat_id, context.args[0])
        deleted = timer is not None and await service.delete_timer(chat_id, timer.id)
        await update.message.reply_text(t("deleted" if deleted else "not_found", locale))
        return

    timers = service.list_timers(chat_id)
    if not timers:
        await update.message.reply_text(t("no_timers", locale))
        return

    if len(timers) == 1:
        timer = timers[0]
        await update.message.reply_text(
            t("confirm_delete", locale, date=format_event_date(timer.event_date, timer.timezone)),
            reply_markup=_confirm_markup(timer.id),
        )
        return

    keyboard = [
        [InlineKeyboardButton(
            format_event_date(timer.event_date, timer.timezone),
            callback_data=encode(ChooseTimer(timer.id)),
        )]
        for timer in timers
    ]
    await update.message.reply_text(
        t("choose_timer", locale), reply_markup=InlineKeyboardMarkup(keyboard),
    )


# ---------------------------------------------------------------------------
# Inline button handlers
# ---------------------------------------------------------------------------


@authorized_only
async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Single entry point for inline buttons; dispatches on the decoded action."""
    query = update.callback_query
    action = decode(query.data)
    alert: str | None = None

    if isinstance(action, PickComponent):
        alert = await _on_pick(query, action, context)
    elif isinstance(action, ChooseTimer):
        await _on_choose_timer(query, action, context)
    elif isinstance(action, ConfirmDelete):
        await _on_confirm_delete(query, action, context)
    elif isinstance(action, CancelDelete):
        await query.edit_message_text(t("delete_cancelled", _locale()))
    else:
        logger.warning("Unknown callback data: %r", query.data)

    await query.answer(alert, show_alert=alert is not None)


async def _on_pick(
    query: CallbackQuery, action: PickComponent, context: ContextTypes.DEFAULT_TYPE,
) -> str | None:
    """Advance the user's picker. Returns alert text for a rejected tap.

    Only the picker message the user opened responds to their taps; anyone
    else tapping it gets an alert and the message is left alone.
    """
    locale = _locale()
    sessions = _sessions(context)
    user_id = query.from_user.id
    session = sessions.get(user_id)
    if session is None:
        return t("no_session", locale)
    if session.message_id != query.message.message_id:
        logger.info("User %d tapped a picker message they are not driving", user_id)
        return t("not_your_picker", locale)

    today = _today()
    try:
        next_kind = session.select(action.kind, action.value, today)
    except SelectionError as exc:
        logger.info("Rejected picker choice from user %d: %s", user_id, exc)
        return t("bad_selection", locale)

    if next_kind is not None:
        await query.edit_message_text(
            t(_PROMPTS[next_kind], locale),
            reply_markup=_picker_markup(session, today),
        )
        return None

    sessions.discard(user_id)
    try:
        event_date = session.resolve(settings.TIMEZONE)
    except DateValidationError as exc:
        logger.info("Picked date of user %d does not resolve: %s", user_id, exc)
        await query.edit_message_text(t("bad_date", locale))
        return None

    if await _create_timer(context, session.chat_id, event_date) is None:
        await query.edit_message_reply_markup(reply_markup=None)
        return None
    await query.edit_message_text(format_event_date(event_date, settings.TIMEZONE))
    return None


async def _on_choose_timer(
    query: CallbackQuery, action: ChooseTimer, context: ContextTypes.DEFAULT_TYPE,
) -> None:
    locale = _locale()
    timer = _service(context).get_timer(query.message.chat_id, action.timer_id)
    if timer is None:
        await query.edit_message_text(t("not_found", locale))
        return
    await query.edit_message_text(
        t("confirm_delete", locale, date=format_event_date(timer.event_date, timer.timezone)),
        reply_markup=_confirm_markup(timer.id),
    )


async def _on_confirm_delete(
    query: CallbackQuery, action: ConfirmDelete, context: ContextTypes.DEFAULT_TYPE,
) -> None:
    deleted = await _service(context).delete_timer(query.message.chat_id, action.timer_id)
    await query.edit_message_text(t("deleted" if deleted else "not_found", _locale()))


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log any handler failure and tell the chat something went wrong."""
    logger.error("Error while handling an update", exc_info=context.error)
    if not isinstance(update, Update) or update.effective_chat is None:
        return
    try:
        await context.bot.send_message(
            chat_id=update.effective_chat.id, text=t("error", _locale()),
        )
    except TelegramError as exc:
        logger.error("Failed to send the error message: %s", exc)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


async def _on_startup(app: Application) -> None:
    """Resume persisted timers before polling starts."""
    from src.core.recovery import recover_timers

    service: TimerService = app.bot_data["timers"]
    await recover_timers(service.store, service.registry, service.scheduler, service.guard)


async def _on_shutdown(app: Application) -> None:
    service: TimerService = app.bot_data["timers"]
    await service.scheduler.shutdown()


def build_app(
    store: TimerStore | None = None,
    publisher: MessagePublisher | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Timer store implementation. Defaults to TimerDB.
        publisher: Messaging implementation; must also provide
                   has_pin_authority. Defaults to TelegramPublisher
                   (created from the bot instance after app is built).
    """
    from src.core.permission_guard import PermissionGuard
    from src.core.registry import TimerRegistry
    from src.core.scheduler import TimerScheduler
    from src.core.timer_service import TimerService

    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(_on_startup)
        .post_shutdown(_on_shutdown)
        .build()
    )

    # Wire default adapters if not provided
    if store is None:
        from src.data.db import TimerDB
        store = TimerDB()

    if publisher is None:
        from src.adapters.telegram_publisher import TelegramPublisher
        publisher = TelegramPublisher(app.bot)

    registry = TimerRegistry()
    scheduler = TimerScheduler(
        registry,
        store,
        publisher,
        tick_seconds=settings.TICK_SECONDS,
        locale=settings.LOCALE,
    )
    service = TimerService(
        store, registry, scheduler, PermissionGuard(publisher), settings.TIMEZONE,
    )

    # Store services in bot_data for handler access
    app.bot_data["timers"] = service
    app.bot_data["sessions"] = SessionStore(settings.MAX_SELECTION_SESSIONS)

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("setdate", cmd_setdate))
    app.add_handler(CommandHandler("timers", cmd_timers))
    app.add_handler(CommandHandler("cleartimer", cmd_cleartimer))

    # Inline buttons
    app.add_handler(CallbackQueryHandler(handle_callback))

    app.add_error_handler(on_error)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Countdown Bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
