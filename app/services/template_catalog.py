"""Default notification templates and catalog seeding."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification_template import NotificationTemplate, TriggerCategory
from app.schemas.notification import NotificationTemplateIn

logger = logging.getLogger(__name__)

DEADLINE = TriggerCategory.DEADLINE.value
MOOD = TriggerCategory.MOOD.value
PERFORMANCE = TriggerCategory.PERFORMANCE.value
AI_SUGGESTION = TriggerCategory.AI_SUGGESTION.value
ACHIEVEMENT = TriggerCategory.ACHIEVEMENT.value

DEFAULT_TEMPLATES: list[NotificationTemplateIn] = [
    # Deadlines
    NotificationTemplateIn(
        template_key="assignment_due_tomorrow",
        type=DEADLINE,
        title_template="{{assignment_name}} is due tomorrow",
        body_template="Due at {{due_time}}. A little progress tonight goes a long way.",
        action_url_template="/assignments/{{assignment_id}}",
        action_label="View assignment",
        priority=80,
    ),
    NotificationTemplateIn(
        template_key="assignment_due_today",
        type=DEADLINE,
        title_template="{{assignment_name}} is due today",
        body_template="Due at {{due_time}}, about {{hours_left}} hours left.",
        action_url_template="/assignments/{{assignment_id}}",
        action_label="Finish it",
        priority=90,
    ),
    NotificationTemplateIn(
        template_key="quiz_tomorrow",
        type=DEADLINE,
        title_template="Quiz tomorrow in {{course_name}}",
        body_template="Your quiz starts at {{quiz_time}}. A quick review tonight will help.",
        action_url_template="/calendar/{{event_id}}",
        action_label="Review now",
        priority=85,
    ),
    NotificationTemplateIn(
        template_key="study_session_starting",
        type=DEADLINE,
        title_template="{{session_name}} starts in 15 minutes",
        body_template="Grab your notes and find a quiet spot.",
        action_url_template="/study-sessions/{{session_id}}",
        action_label="Open session",
        priority=70,
    ),
    # Mood
    NotificationTemplateIn(
        template_key="heavy_load_low_mood",
        type=MOOD,
        title_template="That's a lot on your plate",
        body_template="You have {{assignment_count}} assignments coming up. Want help breaking them into smaller steps?",
        action_url_template="/planner",
        action_label="Plan my week",
        priority=95,
    ),
    NotificationTemplateIn(
        template_key="stressed_with_deadlines",
        type=MOOD,
        title_template="Feeling the pressure?",
        body_template="{{assignment_count}} deadlines in the next three days. Let's pick the first one together.",
        action_url_template="/planner",
        action_label="Start planning",
        priority=90,
    ),
    NotificationTemplateIn(
        template_key="consistently_low_mood",
        type=MOOD,
        title_template="Checking in on you",
        body_template="You've been feeling down for {{days}} days. It might help to talk to someone.",
        action_url_template="/wellness",
        action_label="See resources",
        priority=95,
    ),
    NotificationTemplateIn(
        template_key="mood_improvement",
        type=MOOD,
        title_template="You're on the upswing",
        body_template="Your mood has been improving this week. Keep doing what's working.",
        action_url_template="/wellness",
        action_label="See your trend",
        priority=50,
    ),
    # Performance
    NotificationTemplateIn(
        template_key="grade_dropped",
        type=PERFORMANCE,
        title_template="Your {{course_name}} grade dropped",
        body_template="It went from {{previous_grade}}% to {{new_grade}}%. Let's find what to focus on.",
        action_url_template="/courses/{{course_id}}",
        action_label="See breakdown",
        priority=85,
    ),
    NotificationTemplateIn(
        template_key="missing_assignments",
        type=PERFORMANCE,
        title_template="{{count}} missing assignments",
        body_template="Turning them in late can still save points.",
        action_url_template="/assignments?filter=missing",
        action_label="View missing",
        priority=80,
    ),
    NotificationTemplateIn(
        template_key="low_quiz_score",
        type=PERFORMANCE,
        title_template="{{quiz_name}}: {{score}}%",
        body_template="Review what you missed in {{course_name}} while it's fresh.",
        action_url_template="/assignments/{{assignment_id}}",
        action_label="Review quiz",
        priority=75,
    ),
    NotificationTemplateIn(
        template_key="late_submissions",
        type=PERFORMANCE,
        title_template="{{count}} late submissions",
        body_template="Submitting earlier could protect your grades. Want to set reminders?",
        action_url_template="/settings/notifications",
        action_label="Set reminders",
        priority=80,
    ),
    # AI suggestions
    NotificationTemplateIn(
        template_key="ai_study_block",
        type=AI_SUGGESTION,
        title_template="Block {{duration}} hours for {{assignment_name}}",
        body_template="Starting {{when}} keeps you ahead of the deadline.",
        action_url_template="/planner?assignment={{assignment_id}}",
        action_label="Schedule it",
        priority=60,
    ),
    NotificationTemplateIn(
        template_key="ai_workload_warning",
        type=AI_SUGGESTION,
        title_template="Next week looks heavy",
        body_template="Your workload is at {{load}}% of your available study time. Getting a head start this weekend will help.",
        action_url_template="/planner",
        action_label="Plan ahead",
        priority=65,
    ),
    NotificationTemplateIn(
        template_key="ai_review_recommendation",
        type=AI_SUGGESTION,
        title_template="{{course_name}} exam in {{days}} days",
        body_template="Start reviewing {{topics}}.",
        action_url_template="/calendar/{{event_id}}",
        action_label="Build a review plan",
        priority=70,
    ),
    # Achievements
    NotificationTemplateIn(
        template_key="streak_milestone",
        type=ACHIEVEMENT,
        title_template="{{days}}-day streak!",
        body_template="You've studied {{days}} days in a row. Keep it going.",
        action_url_template="/achievements",
        action_label="See achievements",
        priority=60,
    ),
    NotificationTemplateIn(
        template_key="perfect_week",
        type=ACHIEVEMENT,
        title_template="Perfect week",
        body_template="Every assignment this week was on time.",
        action_url_template="/achievements",
        action_label="See achievements",
        priority=60,
    ),
    NotificationTemplateIn(
        template_key="grade_improvement",
        type=ACHIEVEMENT,
        title_template="Your {{course_name}} grade is up",
        body_template="Up to {{new_grade}}%. Your work is paying off.",
        action_url_template="/courses/{{course_id}}",
        action_label="See progress",
        priority=60,
    ),
]


async def seed_default_templates(db: AsyncSession) -> int:
    """Insert default templates whose keys are not in the catalog yet.

    Existing rows are left untouched so edited copy survives a reseed.
    Returns the number of templates added.
    """
    result = await db.execute(select(NotificationTemplate.template_key))
    existing = set(result.scalars().all())

    added = 0
    for template in DEFAULT_TEMPLATES:
        if template.template_key in existing:
            continue
        db.add(NotificationTemplate(**template.model_dump()))
        added += 1

    await db.commit()
    if added:
        logger.info(f"Seeded {added} notification templates")
    return added
