"""
MJML Email Templates
Challenge emails in Arabic (RTL, default) and English
"""

from datetime import datetime, timezone
from html import escape
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import COACH_IMAGE_URL

# Brand colors - Violet/Pink scheme
THEME = {
    "primary": "#7c3aed",
    "primary_light": "#a855f7",
    "background": "#f4f3ff",
    "card_bg": "#ffffff",
    "text_primary": "#111111",
    "text_secondary": "#1f2937",
    "text_muted": "#6b7280",
    "border": "#e6defd",
    "success": "#166534",
    "warning_text": "#78350f",
}

BRAND_NAME = "فطرة الأمهات · Fittrah Moms"
COACH_NAME = {"ar": "مريم بوزير", "en": "Meriem Bouzir"}

ARABIC_WEEKDAYS = ["الاثنين", "الثلاثاء", "الأربعاء", "الخميس", "الجمعة", "السبت", "الأحد"]
ARABIC_MONTHS = [
    "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
    "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
]

CHALLENGE_COPY = {
    "ar": {
        "subject": "🎉 تم تسجيلك في تحدي التوازن!",
        "title": "🎉 تم تسجيلك بنجاح!",
        "preview": "مبارك! أنتِ الآن مسجّلة في تحدي التوازن",
        "default_greeting": "عزيزتي",
        "hello": "مرحبًا",
        "intro": "نحن سعداء جدًا بانضمامك! استعدّي لرحلة مميزة نحو التوازن والهدوء الداخلي.",
        "details": "📅 تفاصيل اللقاء",
        "date": "التاريخ",
        "time": "الوقت",
        "minutes": "دقيقة",
        "link_title": "🔗 رابط الانضمام للاجتماع",
        "link_hint": "احفظي هذا الرابط واستخدميه للانضمام في الموعد المحدد",
        "cta": "🚀 افتحي رابط الاجتماع",
        "tips_title": "⚠️ ملاحظات مهمة للاجتماع",
        "tips": [
            "احرصي على الانضمام قبل الموعد بـ 5 دقائق",
            "تأكدي من وجود اتصال جيد بالإنترنت",
            "اختاري مكان هادئ للتركيز",
            "جهّزي ورقة وقلم لتدوين الملاحظات",
        ],
        "registration_id": "رقم التسجيل",
        "closing": "💜 أنتظركِ بشوق في اللقاء!",
        "signoff": "مع محبّتي،",
        "comma": "،",
        "am": "ص",
        "pm": "م",
    },
    "en": {
        "subject": "🎉 You're registered for the Balance Challenge!",
        "title": "🎉 You're in!",
        "preview": "Congratulations! Your seat in the Balance Challenge is confirmed",
        "default_greeting": "there",
        "hello": "Hi",
        "intro": "We're so happy you're joining! Get ready for a journey toward balance and inner calm.",
        "details": "📅 Session details",
        "date": "Date",
        "time": "Time",
        "minutes": "minutes",
        "link_title": "🔗 Meeting link",
        "link_hint": "Save this link and use it to join at the scheduled time",
        "cta": "🚀 Open the meeting link",
        "tips_title": "⚠️ Before the session",
        "tips": [
            "Join 5 minutes early",
            "Make sure your internet connection is stable",
            "Find a quiet place to focus",
            "Have a pen and paper ready for notes",
        ],
        "registration_id": "Registration ID",
        "closing": "💜 Looking forward to seeing you!",
        "signoff": "With love,",
        "comma": ",",
        "am": "AM",
        "pm": "PM",
    },
}


def localize_start(starts_at: Optional[datetime], tz_name: str) -> Optional[datetime]:
    """Convert the stored start time into the challenge's timezone"""
    if starts_at is None:
        return None
    if starts_at.tzinfo is None:
        starts_at = starts_at.replace(tzinfo=timezone.utc)
    try:
        return starts_at.astimezone(ZoneInfo(tz_name))
    except (ZoneInfoNotFoundError, ValueError):
        return starts_at


def format_date(value: Optional[datetime], lang: str = "ar") -> str:
    if value is None:
        return ""
    if lang == "ar":
        return (
            f"{ARABIC_WEEKDAYS[value.weekday()]}، {value.day} "
            f"{ARABIC_MONTHS[value.month - 1]} {value.year}"
        )
    return value.strftime("%A, %B %d, %Y")


def format_time(value: Optional[datetime], lang: str = "ar") -> str:
    if value is None:
        return ""
    copy = CHALLENGE_COPY[lang]
    hour = value.hour % 12 or 12
    suffix = copy["am"] if value.hour < 12 else copy["pm"]
    return f"{hour:02d}:{value.minute:02d} {suffix}"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    lang: str = "ar",
) -> str:
    """Base MJML template wrapper for all emails"""
    align = "right" if lang == "ar" else "left"

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="'Tajawal', Tahoma, Arial, sans-serif" />
          <mj-text font-size="15px" line-height="1.9" color="{THEME['text_primary']}" align="{align}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">

        <!-- Header with coach photo -->
        <mj-section background-color="#f6edff" padding="28px 20px">
          <mj-column width="25%">
            <mj-image src="{COACH_IMAGE_URL}" alt="{COACH_NAME[lang]}" width="68px" border-radius="22px" padding="0" />
          </mj-column>
          <mj-column width="75%">
            <mj-text font-size="20px" font-weight="800" color="#2e1065" padding="0">
              {COACH_NAME[lang]}
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="{THEME['card_bg']}" padding="24px 30px">
          <mj-column>
            <mj-text font-size="22px" font-weight="800" color="{THEME['success']}" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        <!-- Footer -->
        <mj-section background-color="#ede9fe" padding="18px 24px">
          <mj-column>
            <mj-text align="center" font-size="13px" font-weight="600" color="#4c1d95" padding="0">
              {BRAND_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

      </mj-body>
    </mjml>
    """


def challenge_confirmation_template(
    name: Optional[str],
    meeting_url: str,
    starts_at: Optional[datetime],
    duration_minutes: int,
    registration_id: str,
    tz_name: str = "UTC",
    lang: str = "ar",
) -> str:
    """Confirmed-seat email with the meeting link"""
    copy = CHALLENGE_COPY[lang]
    greet = escape(name.strip()) if name and name.strip() else copy["default_greeting"]
    local_start = localize_start(starts_at, tz_name)
    meeting_url = escape(meeting_url, quote=True)
    tips = "<br/>".join(f"• {tip}" for tip in copy["tips"])

    content = f"""
    <mj-text>
      {copy['hello']} <strong style="color: {THEME['primary']};">{greet}</strong>{copy['comma']}
    </mj-text>

    <mj-text>
      {copy['intro']}
    </mj-text>

    <mj-text font-size="18px" font-weight="700" color="{THEME['primary']}" padding="16px 0 8px 0">
      {copy['details']}
    </mj-text>

    <mj-text>
      <strong>{copy['date']}:</strong> {format_date(local_start, lang)}<br/>
      <strong>{copy['time']}:</strong> {format_time(local_start, lang)} ({duration_minutes} {copy['minutes']})
    </mj-text>

    <mj-text font-size="17px" font-weight="700" color="{THEME['primary']}" padding="16px 0 4px 0">
      {copy['link_title']}
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      {copy['link_hint']}<br/>
      <a href="{meeting_url}" style="color: {THEME['primary']}; font-family: monospace;">{meeting_url}</a>
    </mj-text>

    <mj-button
      href="{meeting_url}"
      background-color="{THEME['primary']}"
      color="#ffffff"
      font-weight="800"
      border-radius="14px"
      padding="12px 0 20px 0"
      font-size="15px">
      {copy['cta']}
    </mj-button>

    <mj-text color="{THEME['warning_text']}" font-size="14px" padding="16px 0">
      <strong>{copy['tips_title']}</strong><br/>
      {tips}
    </mj-text>

    <mj-text font-size="13px" color="#64748b" padding="16px 0 0 0">
      🆔 {copy['registration_id']}: <code>{registration_id}</code>
    </mj-text>

    <mj-text align="center" padding="16px 0">
      {copy['closing']}
    </mj-text>

    <mj-text>
      {copy['signoff']}<br/>
      <strong style="color: {THEME['primary']};">{COACH_NAME[lang]}</strong>
    </mj-text>
    """

    return get_base_template(
        title=copy["title"],
        preview_text=copy["preview"],
        content_sections=content,
        lang=lang,
    )


def challenge_confirmation_text(
    name: Optional[str],
    meeting_url: str,
    starts_at: Optional[datetime],
    duration_minutes: int,
    registration_id: str,
    tz_name: str = "UTC",
    lang: str = "ar",
) -> str:
    """Plain-text alternative of the confirmation email"""
    copy = CHALLENGE_COPY[lang]
    greet = name.strip() if name and name.strip() else copy["default_greeting"]
    local_start = localize_start(starts_at, tz_name)

    lines = [
        f"{copy['hello']} {greet}{copy['comma']}",
        "",
        copy["intro"],
        "",
        copy["details"],
        f"{copy['date']}: {format_date(local_start, lang)}",
        f"{copy['time']}: {format_time(local_start, lang)}",
        f"{duration_minutes} {copy['minutes']}",
        "",
        copy["link_title"],
        meeting_url,
        "",
        copy["tips_title"],
        *[f"• {tip}" for tip in copy["tips"]],
        "",
        f"{copy['registration_id']}: {registration_id}",
        "",
        copy["closing"],
        "",
        copy["signoff"],
        COACH_NAME[lang],
        "",
        "-----",
        BRAND_NAME,
    ]
    return "\n".join(lines)
