"""
Countdown Bot — User-facing strings.

One table per supported locale. Core and bot modules never hard-code text;
they call `t(key, locale, **kwargs)`.
"""

from __future__ import annotations

# Unit word forms: ru → (one, few, many), en → (one, other)
_UNITS: dict[str, dict[str, tuple[str, ...]]] = {
    "ru": {
        "years": ("год", "года", "лет"),
        "months": ("месяц", "месяца", "месяцев"),
        "days": ("день", "дня", "дней"),
        "hours": ("час", "часа", "часов"),
        "minutes": ("минута", "минуты", "минут"),
        "seconds": ("секунда", "секунды", "секунд"),
    },
    "en": {
        "years": ("year", "years"),
        "months": ("month", "months"),
        "days": ("day", "days"),
        "hours": ("hour", "hours"),
        "minutes": ("minute", "minutes"),
        "seconds": ("second", "seconds"),
    },
}

_MONTHS: dict[str, tuple[str, ...]] = {
    "ru": (
        "Январь", "Февраль", "Март", "Апрель", "Май", "Июнь",
        "Июль", "Август", "Сентябрь", "Октябрь", "Ноябрь", "Декабрь",
    ),
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
}

_MESSAGES: dict[str, dict[str, str]] = {
    "ru": {
        "start": (
            "Привет! Используйте /setdate для установки таймера или введите дату "
            "вручную в формате /setdate YYYY-MM-DD HH:mm"
        ),
        "help": (
            "Доступные команды:\n"
            "/setdate — выбрать дату и время кнопками\n"
            "/setdate YYYY-MM-DD HH:mm — задать дату вручную\n"
            "/timers — список таймеров этого чата\n"
            "/cleartimer [id] — удалить таймер\n"
            "/help — это сообщение"
        ),
        "pick_year": "Выберите год:",
        "pick_month": "Выберите месяц:",
        "pick_day": "Выберите день:",
        "pick_hour": "Выберите час:",
        "pick_minute": "Выберите минуты:",
        "event_set": "Событие установлено на {date}!",
        "bad_format": "Неправильный формат даты. Используйте /setdate для выбора даты.",
        "bad_date": "Произошла ошибка при установке даты. Попробуйте еще раз.",
        "bad_selection": "Этот вариант сейчас недоступен. Начните заново: /setdate",
        "no_session": "Выбор даты не начат или устарел. Используйте /setdate.",
        "not_your_picker": "Этот выбор даты для вас не активен. Используйте /setdate.",
        "status": "⏳ Осталось: {remaining}",
        "times_up": "⏳ Время пришло!",
        "need_pin_rights": (
            "❌ У бота нет права закреплять сообщения в этом чате.\n"
            "Сделайте бота администратором и включите право «Закрепление сообщений», "
            "затем попробуйте снова."
        ),
        "timer_stopped": "⚠️ Таймер на {date} остановлен из-за ошибки.",
        "no_timers": "❌ Таймер не установлен.",
        "timers_header": "Таймеры этого чата:",
        "timer_line": "{id} — {date} (осталось: {remaining})",
        "choose_timer": "Какой таймер удалить?",
        "confirm_delete": "Вы уверены, что хотите удалить таймер на {date}?",
        "yes": "✅ Да",
        "cancel": "❌ Отмена",
        "deleted": "✅ Таймер удалён.",
        "delete_cancelled": "❌ Удаление таймера отменено.",
        "not_found": "Таймер не найден или уже удалён.",
        "storage_failed": "Не удалось сохранить таймер. Попробуйте позже.",
        "error": "⚠️ Произошла ошибка при выполнении операции.",
    },
    "en": {
        "start": (
            "Hi! Use /setdate to set a timer, or type the date yourself as "
            "/setdate YYYY-MM-DD HH:mm"
        ),
        "help": (
            "Available commands:\n"
            "/setdate — pick a date and time with buttons\n"
            "/setdate YYYY-MM-DD HH:mm — type the date yourself\n"
            "/timers — list this chat's timers\n"
            "/cleartimer [id] — delete a timer\n"
            "/help — show this message"
        ),
        "pick_year": "Choose a year:",
        "pick_month": "Choose a month:",
        "pick_day": "Choose a day:",
        "pick_hour": "Choose an hour:",
        "pick_minute": "Choose minutes:",
        "event_set": "Event set for {date}!",
        "bad_format": "Invalid date format. Use /setdate to pick a date.",
        "bad_date": "Something went wrong while setting the date. Please try again.",
        "bad_selection": "That option isn't available right now. Start over with /setdate",
        "no_session": "No date selection in progress. Use /setdate.",
        "not_your_picker": "This date picker isn't active for you. Use /setdate.",
        "status": "⏳ Time left: {remaining}",
        "times_up": "⏳ Time's up!",
        "need_pin_rights": (
            "❌ The bot can't pin messages in this chat.\n"
            "Make the bot an administrator and enable the \"Pin messages\" "
            "permission, then try again."
        ),
        "timer_stopped": "⚠️ The timer for {date} stopped because of an error.",
        "no_timers": "❌ No timer is set.",
        "timers_header": "Timers in this chat:",
        "timer_line": "{id} — {date} (left: {remaining})",
        "choose_timer": "Which timer do you want to delete?",
        "confirm_delete": "Are you sure you want to delete the timer for {date}?",
        "yes": "✅ Yes",
        "cancel": "❌ Cancel",
        "deleted": "✅ Timer deleted.",
        "delete_cancelled": "❌ Timer deletion cancelled.",
        "not_found": "Timer not found or already deleted.",
        "storage_failed": "Couldn't save the timer. Please try again later.",
        "error": "⚠️ Something went wrong while running the operation.",
    },
}


def t(key: str, locale: str = "ru", **kwargs: object) -> str:
    """Look up a message for the locale and fill in its placeholders."""
    template = _MESSAGES[locale][key]
    return template.format(**kwargs) if kwargs else template


def month_names(locale: str = "ru") -> tuple[str, ...]:
    """Return the twelve month names, January first."""
    return _MONTHS[locale]


def plural_form(n: int, locale: str = "ru") -> int:
    """Index of the word form to use for count n.

    Russian has three forms (1 год, 2 года, 5 лет); English has two.
    """
    n = abs(n)
    if locale == "ru":
        if n % 10 == 1 and n % 100 != 11:
            return 0
        if 2 <= n % 10 <= 4 and not 12 <= n % 100 <= 14:
            return 1
        return 2
    return 0 if n == 1 else 1


def unit_word(unit: str, n: int, locale: str = "ru") -> str:
    """Return the correctly pluralized word for a time unit."""
    return _UNITS[locale][unit][plural_form(n, locale)]
