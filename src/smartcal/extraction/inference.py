# Keyword rules: event-keyword gate, type/priority inference, title cleanup.
# Created: 2026-10-02

from __future__ import annotations

import re

from smartcal.events.models import DEFAULT_TITLE, EventPriority, EventType

MAX_TITLE_LENGTH = 200

EVENT_TYPE_KEYWORDS: dict[EventType, tuple[str, ...]] = {
    EventType.MEETING: ("会议", "开会", "讨论", "沟通", "汇报", "面谈"),
    EventType.APPOINTMENT: ("预约", "约见", "面谈", "拜访", "咨询"),
    EventType.TASK: ("任务", "工作", "完成", "处理", "准备", "整理"),
    EventType.REMINDER: ("提醒", "记得", "不要忘记", "注意", "关注"),
    EventType.PERSONAL: ("生日", "纪念日", "旅行", "度假", "休息", "锻炼", "学习"),
    EventType.HEALTH: ("体检", "看病", "吃药", "运动", "健身", "饮食"),
}

PRIORITY_KEYWORDS: dict[EventPriority, tuple[str, ...]] = {
    EventPriority.HIGH: ("重要", "紧急", "必须", "关键", "优先", "立即"),
    EventPriority.MEDIUM: ("一般", "普通", "正常", "安排", "计划"),
    EventPriority.LOW: ("可以", "有空", "顺便", "如果", "考虑"),
}

# Words that mark a line as calendar-relevant even without a type keyword.
SCHEDULING_KEYWORDS: tuple[str, ...] = ("安排", "计划", "日程", "事件", "活动", "要做", "准备", "进行")

TITLE_CONNECTIVES: tuple[str, ...] = ("的", "在", "有", "和", "与", "要", "去", "到", "是")


def _compile(keywords: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("(" + "|".join(re.escape(k) for k in keywords) + ")", re.IGNORECASE)


# Evaluated in order; the first matching rule wins.
EVENT_TYPE_RULES: tuple[tuple[EventType, re.Pattern[str]], ...] = tuple(
    (event_type, _compile(keywords)) for event_type, keywords in EVENT_TYPE_KEYWORDS.items()
)

PRIORITY_RULES: tuple[tuple[EventPriority, re.Pattern[str]], ...] = (
    (EventPriority.HIGH, _compile(PRIORITY_KEYWORDS[EventPriority.HIGH])),
    (EventPriority.MEDIUM, _compile(PRIORITY_KEYWORDS[EventPriority.MEDIUM])),
)

_ALL_EVENT_KEYWORDS: tuple[str, ...] = tuple(
    keyword.lower()
    for keywords in EVENT_TYPE_KEYWORDS.values()
    for keyword in keywords
) + SCHEDULING_KEYWORDS


def has_event_keyword(text: str) -> bool:
    """True if *text* mentions any event-type or scheduling keyword."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in _ALL_EVENT_KEYWORDS)


def infer_event_type(text: str) -> EventType:
    for event_type, pattern in EVENT_TYPE_RULES:
        if pattern.search(text):
            return event_type
    return EventType.PERSONAL


def infer_priority(text: str) -> EventPriority:
    for priority, pattern in PRIORITY_RULES:
        if pattern.search(text):
            return priority
    return EventPriority.LOW


def extract_title(
    line: str,
    date_match: re.Match[str] | None,
    time_match: re.Match[str] | None,
) -> str:
    """Derive an event title by stripping the date/time phrases from *line*.

    Leading connective particles (的, 在, 有, ...) are removed once each, in
    order. The result is capped at MAX_TITLE_LENGTH and never empty.
    """
    title = line

    if date_match is not None:
        title = title.replace(date_match.group(0), "", 1).strip()

    if time_match is not None:
        title = title.replace(time_match.group(0), "", 1).strip()

    for connective in TITLE_CONNECTIVES:
        if title.startswith(connective):
            title = title[len(connective):].strip()

    if not title:
        return DEFAULT_TITLE

    return title[:MAX_TITLE_LENGTH]
