"""
Locale profiles - per-language formatting data.

Every language-dependent string or formatting rule used outside of message
templates lives here as data: weekday and month names, currency, price and
duration formatting, proximity phrases and interactive card UI strings.
Supporting a new language means adding one LocaleProfile entry.

Lookups never raise for an unknown language tag: region subtags are stripped
("pt-BR" -> "pt") and anything still unknown resolves to the default language.
"""

from dataclasses import dataclass
from datetime import date

from shared.config import get_settings

FALLBACK_LANGUAGE = "en"


def plural(n: int, forms: tuple[str, ...]) -> str:
    """
    Pick the plural form for n.

    Two forms use the one/other rule. Three forms use the Slavic
    one/few/many rule (1 час, 2 часа, 5 часов, 11 часов, 21 час).
    """
    n = abs(n)
    if len(forms) == 3:
        mod10 = n % 10
        mod100 = n % 100
        if 11 <= mod100 <= 14:
            return forms[2]
        if mod10 == 1:
            return forms[0]
        if 2 <= mod10 <= 4:
            return forms[1]
        return forms[2]
    return forms[0] if n == 1 else forms[1]


@dataclass(frozen=True)
class LocaleProfile:
    """Formatting data for one language."""

    code: str
    locale: str
    currency: str
    currency_symbol: str
    symbol_first: bool
    decimal_separator: str
    thousands_separator: str
    weekdays: tuple[str, ...]  # Monday first
    weekdays_short: tuple[str, ...]
    months_short: tuple[str, ...]
    long_date: str  # {weekday} {day} {month}
    hour_forms: tuple[str, ...]
    minute_forms: tuple[str, ...]
    day_forms: tuple[str, ...]
    earlier: str  # {amount}
    later: str
    same_time: str
    today: str
    tomorrow: str
    yesterday: str
    day_after_tomorrow: str
    in_days: str  # {amount}
    days_earlier: str
    bookings: tuple[str, ...]
    card_header: str
    card_body: str  # {service}
    card_body_generic: str
    card_footer: str
    list_button: str
    confirm_body: str  # {service} {date} {time} {master}
    confirm_button: str
    change_button: str
    alternatives_header: str
    duration_hours: str = "h"
    duration_minutes: str = "min"
    rtl: bool = False

    def weekday(self, value: date) -> str:
        return self.weekdays[value.weekday()]

    def weekday_short(self, value: date) -> str:
        return self.weekdays_short[value.weekday()]

    def format_long_date(self, value: date) -> str:
        """Format a date as e.g. "Friday, Oct 25"."""
        return self.long_date.format(
            weekday=self.weekday(value),
            day=value.day,
            month=self.months_short[value.month - 1],
        )

    def format_price(self, amount_minor: int) -> str:
        """Format a price given in minor currency units (cents)."""
        sign = "-" if amount_minor < 0 else ""
        whole, cents = divmod(abs(amount_minor), 100)
        grouped = f"{whole:,}".replace(",", self.thousands_separator)
        number = f"{grouped}{self.decimal_separator}{cents:02d}"
        if self.symbol_first:
            return f"{sign}{self.currency_symbol}{number}"
        return f"{sign}{number} {self.currency_symbol}"

    def format_duration(self, minutes: int) -> str:
        if minutes < 60:
            return f"{minutes}{self.duration_minutes}"
        hours, mins = divmod(minutes, 60)
        if mins:
            return f"{hours}{self.duration_hours} {mins}{self.duration_minutes}"
        return f"{hours}{self.duration_hours}"

    def time_proximity(self, delta_minutes: int) -> str:
        """
        Describe a time offset relative to the requested time.

        Whole hours are reported when the offset is at least one hour,
        minutes otherwise: -30 -> "30 minutes earlier", 120 -> "2 hours later".
        """
        if delta_minutes == 0:
            return self.same_time
        magnitude = abs(delta_minutes)
        hours, minutes = divmod(magnitude, 60)
        if hours > 0:
            amount = f"{hours} {plural(hours, self.hour_forms)}"
        else:
            amount = f"{minutes} {plural(minutes, self.minute_forms)}"
        template = self.earlier if delta_minutes < 0 else self.later
        return template.format(amount=amount)

    def date_proximity(self, delta_days: int) -> str | None:
        """Describe a day offset ("Tomorrow", "In 3 days"); None beyond a week."""
        if delta_days == 0:
            return self.today
        if delta_days == 1:
            return self.tomorrow
        if delta_days == -1:
            return self.yesterday
        if delta_days == 2:
            return self.day_after_tomorrow
        if 2 < delta_days <= 7:
            return self.in_days.format(amount=f"{delta_days} {plural(delta_days, self.day_forms)}")
        if -7 <= delta_days < -1:
            amount = f"{-delta_days} {plural(delta_days, self.day_forms)}"
            return self.days_earlier.format(amount=amount)
        return None


LOCALES: dict[str, LocaleProfile] = {
    "en": LocaleProfile(
        code="en",
        locale="en-US",
        currency="USD",
        currency_symbol="$",
        symbol_first=True,
        decimal_separator=".",
        thousands_separator=",",
        weekdays=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
        weekdays_short=("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
        months_short=(
            "Jan", "Feb", "Mar", "Apr", "May", "Jun",
            "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
        ),
        long_date="{weekday}, {month} {day}",
        hour_forms=("hour", "hours"),
        minute_forms=("minute", "minutes"),
        day_forms=("day", "days"),
        earlier="{amount} earlier",
        later="{amount} later",
        same_time="exact time",
        today="Today",
        tomorrow="Tomorrow",
        yesterday="Yesterday",
        day_after_tomorrow="Day after tomorrow",
        in_days="In {amount}",
        days_earlier="{amount} earlier",
        bookings=("booking", "bookings"),
        card_header="Available Times",
        card_body="Choose a time for {service}:",
        card_body_generic="Choose a time:",
        card_footer="Tap to book instantly",
        list_button="View Times",
        confirm_body="Confirm booking:\n\n{service}\n{date} at {time}\nwith {master}",
        confirm_button="Confirm",
        change_button="Change",
        alternatives_header="This time is no longer available. Here are nearby alternatives:",
    ),
    "ru": LocaleProfile(
        code="ru",
        locale="ru-RU",
        currency="RUB",
        currency_symbol="₽",
        symbol_first=False,
        decimal_separator=",",
        thousands_separator=" ",
        weekdays=("понедельник", "вторник", "среда", "четверг", "пятница", "суббота", "воскресенье"),
        weekdays_short=("Пн", "Вт", "Ср", "Чт", "Пт", "Сб", "Вс"),
        months_short=(
            "янв.", "февр.", "мар.", "апр.", "мая", "июн.",
            "июл.", "авг.", "сент.", "окт.", "нояб.", "дек.",
        ),
        long_date="{weekday}, {day} {month}",
        hour_forms=("час", "часа", "часов"),
        minute_forms=("минута", "минуты", "минут"),
        day_forms=("день", "дня", "дней"),
        earlier="{amount} раньше",
        later="{amount} позже",
        same_time="точно в срок",
        today="Сегодня",
        tomorrow="Завтра",
        yesterday="Вчера",
        day_after_tomorrow="Послезавтра",
        in_days="Через {amount}",
        days_earlier="{amount} назад",
        bookings=("запись", "записи", "записей"),
        card_header="Доступное время",
        card_body="Выберите время для {service}:",
        card_body_generic="Выберите время:",
        card_footer="Нажмите, чтобы забронировать",
        list_button="Показать время",
        confirm_body="Подтвердите бронирование:\n\n{service}\n{date} в {time}\nу {master}",
        confirm_button="Подтвердить",
        change_button="Изменить",
        alternatives_header="Это время уже занято. Вот ближайшие альтернативы:",
        duration_hours="ч",
        duration_minutes="мин",
    ),
    "es": LocaleProfile(
        code="es",
        locale="es-ES",
        currency="EUR",
        currency_symbol="€",
        symbol_first=False,
        decimal_separator=",",
        thousands_separator=".",
        weekdays=("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"),
        weekdays_short=("lun", "mar", "mié", "jue", "vie", "sáb", "dom"),
        months_short=(
            "ene", "feb", "mar", "abr", "may", "jun",
            "jul", "ago", "sept", "oct", "nov", "dic",
        ),
        long_date="{weekday}, {day} {month}",
        hour_forms=("hora", "horas"),
        minute_forms=("minuto", "minutos"),
        day_forms=("día", "días"),
        earlier="{amount} antes",
        later="{amount} después",
        same_time="hora exacta",
        today="Hoy",
        tomorrow="Mañana",
        yesterday="Ayer",
        day_after_tomorrow="Pasado mañana",
        in_days="En {amount}",
        days_earlier="Hace {amount}",
        bookings=("reserva", "reservas"),
        card_header="Horarios Disponibles",
        card_body="Elige un horario para {service}:",
        card_body_generic="Elige un horario:",
        card_footer="Toca para reservar",
        list_button="Ver Horarios",
        confirm_body="Confirmar reserva:\n\n{service}\n{date} a las {time}\ncon {master}",
        confirm_button="Confirmar",
        change_button="Cambiar",
        alternatives_header="Este horario ya no está disponible. Aquí hay alternativas cercanas:",
    ),
    "pt": LocaleProfile(
        code="pt",
        locale="pt-BR",
        currency="BRL",
        currency_symbol="R$ ",
        symbol_first=True,
        decimal_separator=",",
        thousands_separator=".",
        weekdays=(
            "segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
            "sexta-feira", "sábado", "domingo",
        ),
        weekdays_short=("seg", "ter", "qua", "qui", "sex", "sáb", "dom"),
        months_short=(
            "jan", "fev", "mar", "abr", "mai", "jun",
            "jul", "ago", "set", "out", "nov", "dez",
        ),
        long_date="{weekday}, {day} de {month}",
        hour_forms=("hora", "horas"),
        minute_forms=("minuto", "minutos"),
        day_forms=("dia", "dias"),
        earlier="{amount} antes",
        later="{amount} depois",
        same_time="horário exato",
        today="Hoje",
        tomorrow="Amanhã",
        yesterday="Ontem",
        day_after_tomorrow="Depois de amanhã",
        in_days="Em {amount}",
        days_earlier="Há {amount}",
        bookings=("reserva", "reservas"),
        card_header="Horários Disponíveis",
        card_body="Escolha um horário para {service}:",
        card_body_generic="Escolha um horário:",
        card_footer="Toque para reservar",
        list_button="Ver Horários",
        confirm_body="Confirmar reserva:\n\n{service}\n{date} às {time}\ncom {master}",
        confirm_button="Confirmar",
        change_button="Mudar",
        alternatives_header="Este horário não está mais disponível. Aqui estão alternativas próximas:",
    ),
    "he": LocaleProfile(
        code="he",
        locale="he-IL",
        currency="ILS",
        currency_symbol="₪",
        symbol_first=False,
        decimal_separator=".",
        thousands_separator=",",
        weekdays=("יום שני", "יום שלישי", "יום רביעי", "יום חמישי", "יום שישי", "שבת", "יום ראשון"),
        weekdays_short=("ב׳", "ג׳", "ד׳", "ה׳", "ו׳", "ש׳", "א׳"),
        months_short=(
            "ינו׳", "פבר׳", "מרץ", "אפר׳", "מאי", "יוני",
            "יולי", "אוג׳", "ספט׳", "אוק׳", "נוב׳", "דצמ׳",
        ),
        long_date="{weekday}, {day} ב{month}",
        hour_forms=("שעה", "שעות"),
        minute_forms=("דקה", "דקות"),
        day_forms=("יום", "ימים"),
        earlier="{amount} קודם",
        later="{amount} אחרי",
        same_time="בדיוק בזמן",
        today="היום",
        tomorrow="מחר",
        yesterday="אתמול",
        day_after_tomorrow="מחרתיים",
        in_days="בעוד {amount}",
        days_earlier="לפני {amount}",
        bookings=("הזמנה", "הזמנות"),
        card_header="זמנים פנויים",
        card_body="בחר זמן עבור {service}:",
        card_body_generic="בחר זמן:",
        card_footer="הקש כדי להזמין",
        list_button="הצג זמנים",
        confirm_body="אשר הזמנה:\n\n{service}\n{date} בשעה {time}\nעם {master}",
        confirm_button="אישור",
        change_button="שנה",
        alternatives_header="זמן זה כבר לא זמין. הנה אלטרנטיבות קרובות:",
        duration_hours=" ש׳",
        duration_minutes=" ד׳",
        rtl=True,
    ),
}

SUPPORTED_LANGUAGES: tuple[str, ...] = tuple(LOCALES)


def normalize_language(language: str | None) -> str:
    """
    Resolve a language tag to a supported language code.

    "pt-BR", "pt_br" and "PT" all resolve to "pt". Unsupported tags resolve
    to the configured default language (or English if that is unsupported too).
    """
    if language:
        primary = language.replace("_", "-").split("-", 1)[0].strip().lower()
        if primary in LOCALES:
            return primary

    default = get_settings().DEFAULT_LANGUAGE
    return default if default in LOCALES else FALLBACK_LANGUAGE


def get_locale(language: str | None) -> LocaleProfile:
    """Return the LocaleProfile for a language tag, falling back to the default."""
    return LOCALES[normalize_language(language)]
