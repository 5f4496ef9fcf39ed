"""
Static message templates for the booking dialog.

Templates use Jinja2 placeholders (``{{ time }}``) and are compiled once by
MessageBuilder. Each template declares its required parameters, an emotion
tag, an emoji and a line limit. Optional variations are keyed by
``(business_type, tone)`` or ``(business_type, None)`` and may cover only
some languages; MessageBuilder walks the fallback chain.
"""

from dataclasses import dataclass, field
from enum import Enum


class Emotion(str, Enum):
    """Emotional register of a message."""

    EMPATHETIC = "empathetic"
    APOLOGETIC = "apologetic"
    EXCITED = "excited"
    HELPFUL = "helpful"
    WELCOMING = "welcoming"
    NEUTRAL = "neutral"


class MessageKey(str, Enum):
    """Registered message template keys."""

    SLOT_TAKEN = "SLOT_TAKEN"
    SAME_DAY_OPTIONS = "SAME_DAY_OPTIONS"
    DIFF_DAY_OPTIONS = "DIFF_DAY_OPTIONS"
    ALL_DAY_BUSY = "ALL_DAY_BUSY"
    WEEK_FULL = "WEEK_FULL"
    SLOT_AVAILABLE = "SLOT_AVAILABLE"
    NO_ALTERNATIVES = "NO_ALTERNATIVES"
    INCOMPLETE_REQUEST = "INCOMPLETE_REQUEST"
    MULTIPLE_OPTIONS = "MULTIPLE_OPTIONS"
    POPULAR_TIMES = "POPULAR_TIMES"
    GREETING = "GREETING"
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    ERROR = "ERROR"


VariationKey = tuple[str, str | None]


@dataclass(frozen=True)
class MessageTemplate:
    """A parametrized message with per-language texts."""

    key: MessageKey
    texts: dict[str, str]
    required_params: tuple[str, ...] = ()
    emotion: Emotion = Emotion.NEUTRAL
    emoji: str = ""
    max_lines: int = 5
    variations: dict[VariationKey, dict[str, str]] = field(default_factory=dict)


MESSAGE_TEMPLATES: dict[MessageKey, MessageTemplate] = {
    MessageKey.SLOT_TAKEN: MessageTemplate(
        key=MessageKey.SLOT_TAKEN,
        required_params=("time", "day"),
        emotion=Emotion.EMPATHETIC,
        emoji="😔",
        max_lines=5,
        texts={
            "ru": "К сожалению, {{ time }} в {{ day }} уже занято 😔\n\nНо не переживайте! Я нашёл отличные варианты 🎯\n\nЧто вам удобнее?",
            "en": "Unfortunately, {{ time }} on {{ day }} is already booked 😔\n\nBut don't worry! I found great options 🎯\n\nWhat works better for you?",
            "es": "Desafortunadamente, {{ time }} el {{ day }} ya está reservado 😔\n\n¡Pero no te preocupes! Encontré excelentes opciones 🎯\n\n¿Qué te conviene más?",
            "pt": "Infelizmente, {{ time }} na {{ day }} já está reservado 😔\n\nMas não se preocupe! Encontrei ótimas opções 🎯\n\nO que funciona melhor para você?",
            "he": "למרבה הצער, {{ time }} ביום {{ day }} כבר תפוס 😔\n\nאבל אל דאגה! מצאתי אפשרויות מעולות 🎯\n\nמה נוח לך יותר?",
        },
        variations={
            ("barbershop", "casual"): {
                "en": "Ah, {{ time }} on {{ day }} is taken, mate 😔\n\nGot a few other chairs open for you 💈\n\nWhich one?",
                "es": "Vaya, {{ time }} el {{ day }} está ocupado 😔\n\nTengo otros huecos para ti 💈\n\n¿Cuál prefieres?",
                "ru": "Эх, {{ time }} в {{ day }} уже занято 😔\n\nЕсть другие свободные кресла 💈\n\nКакое выберете?",
            },
            ("spa", None): {
                "en": "We're sorry, {{ time }} on {{ day }} is no longer available 🌿\n\nWe have found some relaxing alternatives for you\n\nWhich would you prefer?",
                "es": "Lo sentimos, {{ time }} el {{ day }} ya no está disponible 🌿\n\nHemos encontrado alternativas para ti\n\n¿Cuál prefieres?",
            },
        },
    ),
    MessageKey.SAME_DAY_OPTIONS: MessageTemplate(
        key=MessageKey.SAME_DAY_OPTIONS,
        required_params=("day", "time"),
        emotion=Emotion.HELPFUL,
        max_lines=2,
        texts={
            "ru": "Вот свободные слоты на {{ day }} рядом с {{ time }}:",
            "en": "Here are free slots on {{ day }} near {{ time }}:",
            "es": "Aquí están los horarios libres el {{ day }} cerca de {{ time }}:",
            "pt": "Aqui estão os horários livres na {{ day }} perto de {{ time }}:",
            "he": "הנה משבצות פנויות ביום {{ day }} ליד {{ time }}:",
        },
    ),
    MessageKey.DIFF_DAY_OPTIONS: MessageTemplate(
        key=MessageKey.DIFF_DAY_OPTIONS,
        required_params=("time",),
        emotion=Emotion.HELPFUL,
        max_lines=2,
        texts={
            "ru": "Вот доступные дни с {{ time }}:",
            "en": "Here are available days at {{ time }}:",
            "es": "Aquí están los días disponibles a las {{ time }}:",
            "pt": "Aqui estão os dias disponíveis às {{ time }}:",
            "he": "הנה ימים זמינים בשעה {{ time }}:",
        },
    ),
    MessageKey.ALL_DAY_BUSY: MessageTemplate(
        key=MessageKey.ALL_DAY_BUSY,
        required_params=("day",),
        emotion=Emotion.EMPATHETIC,
        emoji="📅",
        max_lines=5,
        texts={
            "ru": "Ой! {{ day }} полностью забронирована 📅\n\nМы очень популярны в этот день! 🎉\n\nНо у меня есть для вас варианты:",
            "en": "Oh! {{ day }} is fully booked 📅\n\nWe're very popular that day! 🎉\n\nBut I have options for you:",
            "es": "¡Oh! {{ day }} está completamente reservado 📅\n\n¡Somos muy populares ese día! 🎉\n\nPero tengo opciones para ti:",
            "pt": "Oh! {{ day }} está totalmente reservado 📅\n\nSomos muito populares nesse dia! 🎉\n\nMas tenho opções para você:",
            "he": "אופס! {{ day }} תפוס לגמרי 📅\n\nאנחנו מאוד פופולריים באותו יום! 🎉\n\nאבל יש לי אפשרויות עבורך:",
        },
    ),
    MessageKey.WEEK_FULL: MessageTemplate(
        key=MessageKey.WEEK_FULL,
        emotion=Emotion.APOLOGETIC,
        emoji="🗓",
        max_lines=3,
        texts={
            "ru": "Эта неделя полностью занята 🗓\n\nМогу предложить следующую неделю или связаться с салоном:",
            "en": "This week is fully booked 🗓\n\nI can look at next week, or you can call the salon:",
            "es": "Esta semana está completa 🗓\n\nPuedo buscar la próxima semana o puedes llamar al salón:",
            "pt": "Esta semana está lotada 🗓\n\nPosso ver a próxima semana ou você pode ligar para o salão:",
            "he": "השבוע הזה מלא לגמרי 🗓\n\nאפשר לבדוק את השבוע הבא או להתקשר לסלון:",
        },
    ),
    MessageKey.SLOT_AVAILABLE: MessageTemplate(
        key=MessageKey.SLOT_AVAILABLE,
        required_params=("day", "time"),
        emotion=Emotion.EXCITED,
        emoji="🎉",
        max_lines=3,
        texts={
            "ru": "Отлично! {{ day }} в {{ time }} свободна 🎉\n\nВот доступные мастера на это время:",
            "en": "Great! {{ day }} at {{ time }} is available 🎉\n\nHere are available masters at this time:",
            "es": "¡Genial! {{ day }} a las {{ time }} está disponible 🎉\n\nAquí están los maestros disponibles:",
            "pt": "Ótimo! {{ day }} às {{ time }} está disponível 🎉\n\nAqui estão os mestres disponíveis:",
            "he": "מעולה! {{ day }} בשעה {{ time }} פנוי 🎉\n\nהנה המומחים הזמינים בשעה זו:",
        },
    ),
    MessageKey.NO_ALTERNATIVES: MessageTemplate(
        key=MessageKey.NO_ALTERNATIVES,
        emotion=Emotion.APOLOGETIC,
        emoji="😔",
        max_lines=3,
        texts={
            "ru": "К сожалению, я не нашёл подходящих вариантов в ближайшее время 😔\n\nПопробуйте выбрать другую дату или свяжитесь с салоном напрямую 📞",
            "en": "Unfortunately, I couldn't find suitable options in the near future 😔\n\nTry selecting a different date or contact the salon directly 📞",
            "es": "Desafortunadamente, no encontré opciones adecuadas en el futuro cercano 😔\n\nIntenta seleccionar otra fecha o contacta al salón directamente 📞",
            "pt": "Infelizmente, não encontrei opções adequadas no futuro próximo 😔\n\nTente selecionar outra data ou entre em contato com o salão diretamente 📞",
            "he": "למרבה הצער, לא מצאתי אפשרויות מתאימות בזמן הקרוב 😔\n\nנסו לבחור תאריך אחר או צרו קשר עם הסלון ישירות 📞",
        },
    ),
    MessageKey.INCOMPLETE_REQUEST: MessageTemplate(
        key=MessageKey.INCOMPLETE_REQUEST,
        emotion=Emotion.HELPFUL,
        emoji="🤔",
        max_lines=3,
        texts={
            "ru": "Уточните, пожалуйста, какую услугу вы хотите 🤔\n\nМогу показать услуги или популярное время:",
            "en": "Which service would you like? 🤔\n\nI can show you our services or our popular times:",
            "es": "¿Qué servicio te gustaría? 🤔\n\nPuedo mostrarte los servicios o los horarios populares:",
            "pt": "Qual serviço você gostaria? 🤔\n\nPosso mostrar os serviços ou os horários populares:",
            "he": "איזה שירות תרצה? 🤔\n\nאפשר להציג את השירותים או את הזמנים הפופולריים:",
        },
    ),
    MessageKey.MULTIPLE_OPTIONS: MessageTemplate(
        key=MessageKey.MULTIPLE_OPTIONS,
        required_params=("count",),
        emotion=Emotion.HELPFUL,
        emoji="✨",
        max_lines=3,
        texts={
            "ru": "Я нашёл {{ count }} подходящих вариантов ✨\n\nПоказать лучшие или все?",
            "en": "I found {{ count }} matching options ✨\n\nShall I show the best ones or all of them?",
            "es": "Encontré {{ count }} opciones ✨\n\n¿Te muestro las mejores o todas?",
            "pt": "Encontrei {{ count }} opções ✨\n\nMostro as melhores ou todas?",
            "he": "מצאתי {{ count }} אפשרויות מתאימות ✨\n\nלהציג את הטובות ביותר או את כולן?",
        },
    ),
    MessageKey.POPULAR_TIMES: MessageTemplate(
        key=MessageKey.POPULAR_TIMES,
        emotion=Emotion.HELPFUL,
        emoji="✨",
        max_lines=2,
        texts={
            "ru": "Вот популярные времена, когда обычно есть места ✨",
            "en": "Here are popular times when slots are usually available ✨",
            "es": "Aquí están los horarios populares cuando suele haber disponibilidad ✨",
            "pt": "Aqui estão os horários populares quando geralmente há disponibilidade ✨",
            "he": "הנה הזמנים הפופולריים שבהם בדרך כלל יש מקום ✨",
        },
    ),
    MessageKey.GREETING: MessageTemplate(
        key=MessageKey.GREETING,
        emotion=Emotion.WELCOMING,
        emoji="👋",
        max_lines=2,
        texts={
            "ru": "Здравствуйте! 👋 Чем могу помочь?",
            "en": "Hi there! 👋 How can I help you today?",
            "es": "¡Hola! 👋 ¿En qué puedo ayudarte hoy?",
            "pt": "Olá! 👋 Como posso ajudar hoje?",
            "he": "שלום! 👋 איך אפשר לעזור היום?",
        },
        variations={
            ("beauty_salon", "friendly"): {
                "en": "Hey lovely! 💅 Ready for some pampering?",
                "es": "¡Hola guapa! 💅 ¿Lista para consentirte?",
                "ru": "Привет, красотка! 💅 Готовы к преображению?",
                "pt": "Oi, linda! 💅 Pronta para se cuidar?",
            },
            ("barbershop", None): {
                "en": "Hey! 💈 Time for a fresh cut?",
                "es": "¡Buenas! 💈 ¿Toca un buen corte?",
                "ru": "Привет! 💈 Пора подстричься?",
            },
            ("spa", "formal"): {
                "en": "Good day and welcome 🌿 How may we assist you?",
                "es": "Buenos días y bienvenido 🌿 ¿En qué podemos ayudarle?",
            },
        },
    ),
    MessageKey.BOOKING_CONFIRMED: MessageTemplate(
        key=MessageKey.BOOKING_CONFIRMED,
        required_params=("service", "day", "time", "master"),
        emotion=Emotion.EXCITED,
        emoji="✅",
        max_lines=3,
        texts={
            "ru": "Готово! ✅ {{ service }}, {{ day }} в {{ time }} у {{ master }}\n\nЖдём вас!",
            "en": "All set! ✅ {{ service }}, {{ day }} at {{ time }} with {{ master }}\n\nSee you soon!",
            "es": "¡Listo! ✅ {{ service }}, {{ day }} a las {{ time }} con {{ master }}\n\n¡Te esperamos!",
            "pt": "Pronto! ✅ {{ service }}, {{ day }} às {{ time }} com {{ master }}\n\nAté logo!",
            "he": "הכל מוכן! ✅ {{ service }}, {{ day }} בשעה {{ time }} עם {{ master }}\n\nנתראה בקרוב!",
        },
    ),
    MessageKey.SESSION_EXPIRED: MessageTemplate(
        key=MessageKey.SESSION_EXPIRED,
        emotion=Emotion.APOLOGETIC,
        emoji="⏰",
        max_lines=3,
        texts={
            "ru": "Ваша сессия истекла ⏰\n\nПожалуйста, начните заново, написав желаемую услугу и время.",
            "en": "Your session has expired ⏰\n\nPlease start over by typing your desired service and time.",
            "es": "Tu sesión ha expirado ⏰\n\nPor favor, comienza de nuevo escribiendo el servicio y hora deseados.",
            "pt": "Sua sessão expirou ⏰\n\nPor favor, comece novamente digitando o serviço e horário desejados.",
            "he": "הסשן שלך פג תוקף ⏰\n\nאנא התחל מחדש על ידי הקלדת השירות והזמן הרצויים.",
        },
    ),
    MessageKey.ERROR: MessageTemplate(
        key=MessageKey.ERROR,
        emotion=Emotion.APOLOGETIC,
        emoji="🙏",
        max_lines=3,
        texts={
            "ru": "Произошла ошибка при обработке вашего запроса 🙏\n\nПожалуйста, попробуйте ещё раз или свяжитесь с салоном.",
            "en": "An error occurred while processing your request 🙏\n\nPlease try again or contact the salon.",
            "es": "Se produjo un error al procesar tu solicitud 🙏\n\nPor favor, inténtalo de nuevo o contacta al salón.",
            "pt": "Ocorreu um erro ao processar sua solicitação 🙏\n\nPor favor, tente novamente ou entre em contato com o salão.",
            "he": "אירעה שגיאה בעיבוד הבקשה שלך 🙏\n\nאנא נסה שוב או צור קשר עם הסלון.",
        },
    ),
}


# Short button labels for choice cards (channel limit: 20 characters)
CHOICE_LABELS: dict[str, dict[str, str]] = {
    "same_day_diff_time": {
        "ru": "✅ Тот же день",
        "en": "✅ Same day, new time",
        "es": "✅ Otra hora ese día",
        "pt": "✅ Mesmo dia",
        "he": "✅ אותו יום",
    },
    "diff_day_same_time": {
        "ru": "📅 То же время",
        "en": "📅 Same time, new day",
        "es": "📅 Otro día",
        "pt": "📅 Mesmo horário",
        "he": "📅 אותה שעה",
    },
    "next_available_day": {
        "ru": "📆 Ближайший день",
        "en": "📆 Next free day",
        "es": "📆 Próximo día libre",
        "pt": "📆 Próximo dia livre",
        "he": "📆 היום הפנוי הבא",
    },
    "next_week": {
        "ru": "🗓 След. неделя",
        "en": "🗓 Next week",
        "es": "🗓 Próxima semana",
        "pt": "🗓 Próxima semana",
        "he": "🗓 שבוע הבא",
    },
    "popular_times": {
        "ru": "✨ Популярное время",
        "en": "✨ Popular times",
        "es": "✨ Horarios populares",
        "pt": "✨ Horários populares",
        "he": "✨ זמנים פופולריים",
    },
    "show_best_matches": {
        "ru": "⭐ Лучшие варианты",
        "en": "⭐ Best matches",
        "es": "⭐ Mejores opciones",
        "pt": "⭐ Melhores opções",
        "he": "⭐ ההתאמות הטובות",
    },
    "see_more": {
        "ru": "👀 Показать ещё",
        "en": "👀 Show more",
        "es": "👀 Ver más",
        "pt": "👀 Ver mais",
        "he": "👀 הצג עוד",
    },
    "pick_another_time": {
        "ru": "🕐 Другое время",
        "en": "🕐 Another time",
        "es": "🕐 Otra hora",
        "pt": "🕐 Outro horário",
        "he": "🕐 שעה אחרת",
    },
    "show_services": {
        "ru": "📋 Услуги",
        "en": "📋 Services",
        "es": "📋 Servicios",
        "pt": "📋 Serviços",
        "he": "📋 שירותים",
    },
    "call_salon": {
        "ru": "📞 Позвонить",
        "en": "📞 Call salon",
        "es": "📞 Llamar al salón",
        "pt": "📞 Ligar p/ salão",
        "he": "📞 התקשר לסלון",
    },
}


# Choice scenarios: (message shown above the buttons, fixed choice ids)
CHOICE_SCENARIOS: dict[str, tuple[MessageKey, tuple[str, ...]]] = {
    "time_unavailable": (
        MessageKey.SLOT_TAKEN,
        ("same_day_diff_time", "diff_day_same_time", "popular_times"),
    ),
    "day_full": (
        MessageKey.ALL_DAY_BUSY,
        ("next_available_day", "diff_day_same_time", "popular_times"),
    ),
    "week_full": (
        MessageKey.WEEK_FULL,
        ("next_week", "call_salon"),
    ),
    "incomplete_request": (
        MessageKey.INCOMPLETE_REQUEST,
        ("show_services", "popular_times"),
    ),
    "multiple_options": (
        MessageKey.MULTIPLE_OPTIONS,
        ("show_best_matches", "see_more"),
    ),
    "popular_times": (
        MessageKey.POPULAR_TIMES,
        ("popular_times", "pick_another_time"),
    ),
}
