"""
Email Templates

Renders subject, plain-text and HTML bodies for the four lifecycle
messages. Every user-supplied value is HTML-escaped before it reaches
markup.
"""

from collections.abc import Mapping
from datetime import date
from functools import singledispatch
from html import escape
from typing import Any

from research_engine.core.config import Settings
from research_engine.core.email import OutgoingEmail

from .events import ApplicationStatusChanged, ApplicationSubmitted, ProjectClosed

_STYLES = """
    <style>
        body { font-family: Roboto, Arial, sans-serif; line-height: 1.6; color: #334155; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .header { color: #005030; margin-bottom: 20px; }
        .info-section { margin: 15px 0; padding: 15px; background-color: #f8fafc; border-radius: 4px; }
        .info-label { font-weight: 500; color: #005030; min-width: 150px; display: inline-block; }
        .button { display: inline-block; padding: 12px 24px; background-color: #7ec265; color: white; text-decoration: none; border-radius: 4px; font-weight: 500; }
        .status-update { font-size: 18px; color: #005030; padding: 15px; background-color: #f8fafc; text-align: center; margin: 20px 0; }
        .warning { color: #ef4444; background-color: #fef2f2; border: 1px solid #ef4444; padding: 15px; border-radius: 4px; margin: 20px 0; }
        .accent { color: #f47321; }
        .footer { margin-top: 20px; padding-top: 20px; border-top: 1px solid #e2e8f0; color: #64748b; font-size: 14px; text-align: center; }
    </style>
"""

_FOOTER = """
            <div class="footer">
                <p style="color: #005030; font-weight: 500;">University of Miami Research Engine</p>
                <p>1320 S Dixie Hwy, Coral Gables, FL 33146</p>
            </div>
"""

_SIGNATURE = "Best regards,\nResearch Engine Team"


def _page(heading: str, content: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        {_STYLES}
    </head>
    <body>
        <div class="container">
            <h2 class="header">{heading}</h2>
            {content}
            {_FOOTER}
        </div>
    </body>
    </html>
    """


def _yes_no(value: Any) -> str:
    return "Yes" if value else "No"


def _format_date(value: Any) -> str:
    if not value:
        return ""
    try:
        return date.fromisoformat(str(value)).strftime("%m/%d/%Y")
    except ValueError:
        return str(value)


def _applicant_rows(
    info: Mapping[str, Any],
    availability: Mapping[str, Any],
    extra: Mapping[str, Any],
) -> list[tuple[str, list[tuple[str, str]]]]:
    """Sections of (label, value) rows describing an applicant, unescaped."""
    name = info.get("name") or {}

    academic = [
        ("Major 1", f"{info.get('major1', '')} ({info.get('major1_college', '')})"),
    ]
    if info.get("has_additional_major"):
        academic.append(("Major 2", f"{info.get('major2', '')} ({info.get('major2_college', '')})"))
    academic.append(("Academic Standing", str(info.get("academic_standing", ""))))
    academic.append(("Expected Graduation", _format_date(info.get("graduation_date"))))
    if info.get("is_pre_health"):
        academic.append(("Pre-Health Track", info.get("pre_health_track") or "Yes"))

    schedule = [
        ("Weekly Hours", str(availability.get("weekly_hours", ""))),
        ("Project Length", str(availability.get("desired_project_length", ""))),
    ]
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"):
        slot = availability.get(f"{day}_availability")
        if slot:
            schedule.append((day.capitalize(), str(slot)))

    additional = [
        ("Previous Research Experience", _yes_no(extra.get("has_prev_research_experience"))),
    ]
    if extra.get("has_prev_research_experience") and extra.get("prev_research_experience"):
        additional.append(("Research Experience Details", str(extra["prev_research_experience"])))
    additional.append(
        ("Statement of Interest", str(extra.get("research_interest_description", "")))
    )
    additional.append(("Federal Work Study", _yes_no(extra.get("has_federal_work_study"))))
    if extra.get("speaks_other_languages") and extra.get("additional_languages"):
        additional.append(("Additional Languages", ", ".join(extra["additional_languages"])))
    additional.append(("Comfortable with Animals", _yes_no(extra.get("comfortable_with_animals"))))

    return [
        (
            "Basic Information",
            [
                ("Name", f"{name.get('first_name', '')} {name.get('last_name', '')}".strip()),
                ("Email", str(info.get("email", ""))),
                ("Phone", str(info.get("phone_number", ""))),
                ("C-Number", str(info.get("c_number", ""))),
                ("GPA", str(info.get("gpa", ""))),
            ],
        ),
        ("Academic Information", academic),
        ("Availability", schedule),
        ("Additional Information", additional),
    ]


@singledispatch
def render(event: Any, settings: Settings) -> list[OutgoingEmail]:
    """
    Render the messages for a notification event, one per recipient.

    Args:
        event: A notification event
        settings: Application settings (URLs used in links)

    Returns:
        Rendered messages

    Raises:
        TypeError: If the event type has no template
    """
    raise TypeError(f"No template registered for {type(event).__name__}")


@render.register
def _(event: ApplicationSubmitted, settings: Settings) -> list[OutgoingEmail]:
    return [
        application_confirmation(event),
        professor_new_application(event, settings.placement_form_url),
    ]


@render.register
def _(event: ApplicationStatusChanged, settings: Settings) -> list[OutgoingEmail]:
    return [status_update(event)]


@render.register
def _(event: ProjectClosed, settings: Settings) -> list[OutgoingEmail]:
    return [project_closed(event)]


def application_confirmation(event: ApplicationSubmitted) -> OutgoingEmail:
    """Confirmation sent to the student who applied."""
    safe_name = escape(event.student_name)
    safe_title = escape(event.project_title)

    text = (
        f"Dear {event.student_name},\n\n"
        f'Thank you for submitting your application for "{event.project_title}". '
        "Your application has been received and the professor will contact you directly "
        "if they wish to proceed with your application.\n\n"
        f"{_SIGNATURE}"
    )
    html = _page(
        "Application Confirmation",
        f"""
            <p>Dear {safe_name},</p>
            <p>Thank you for submitting your application for <strong class="accent">"{safe_title}"</strong>.</p>
            <p>Your application has been received and the professor will contact you directly if they wish to proceed with your application.</p>
        """,
    )
    return OutgoingEmail(
        to=event.student_email,
        subject="Research Application Confirmation",
        text=text,
        html=html,
        tags={"event_id": str(event.event_id), "template": "application_confirmation"},
    )


def professor_new_application(event: ApplicationSubmitted, placement_form_url: str) -> OutgoingEmail:
    """Alert sent to the owning professor, with the applicant's details and resume link."""
    sections = _applicant_rows(event.student_info, event.availability, event.additional_info)

    text_lines = [
        "Dear Professor,",
        "",
        f'A new application has been submitted for your research opportunity "{event.project_title}". '
        "Below is the applicant's information:",
    ]
    html_sections = []
    for heading, rows in sections:
        text_lines.append("")
        text_lines.append(f"{heading}:")
        text_lines.extend(f"- {label}: {value}" for label, value in rows)

        html_rows = "\n".join(
            f'<p><span class="info-label">{escape(label)}:</span> {escape(value)}</p>'
            for label, value in rows
        )
        html_sections.append(
            f"""
            <div class="info-section">
                <h3 style="color: #005030;">{escape(heading)}</h3>
                {html_rows}
            </div>
            """
        )

    text_lines.append("")
    if event.resume_url:
        text_lines.append(f"Resume: {event.resume_url}")
        resume_html = f"""
            <div style="text-align: center; margin: 30px 0;">
                <a href="{escape(event.resume_url)}" class="button">Download Resume</a>
            </div>
        """
    else:
        text_lines.append("Resume: available from the applications page.")
        resume_html = "<p>The resume is available from the applications page.</p>"

    text_lines.extend(
        [
            "",
            "Please contact the student directly if you wish to proceed with their application.",
            "If you accept a student for this position, they must complete the Self-Placement "
            f"form available at: {placement_form_url}",
            "",
            _SIGNATURE,
        ]
    )

    safe_title = escape(event.project_title)
    safe_form_url = escape(placement_form_url)
    html = _page(
        "New Research Application",
        f"""
            <p>A new application has been submitted for your research opportunity <strong class="accent">"{safe_title}"</strong>.</p>
            {"".join(html_sections)}
            {resume_html}
            <div class="info-section">
                <p style="color: #005030; font-weight: 500;">Next Steps:</p>
                <p>1. Review the application details above</p>
                <p>2. Contact the student directly if you wish to proceed</p>
                <p>3. If you accept the student, ensure they complete the <a href="{safe_form_url}" target="_blank">Self-Placement form</a></p>
            </div>
        """,
    )
    return OutgoingEmail(
        to=event.professor_email,
        subject=f"New Research Application: {event.project_title}",
        text="\n".join(text_lines),
        html=html,
        tags={"event_id": str(event.event_id), "template": "professor_new_application"},
    )


def status_update(event: ApplicationStatusChanged) -> OutgoingEmail:
    status = event.status.value.lower()
    safe_title = escape(event.project_title)

    text = f'Your application for "{event.project_title}" has been {status}.\n\n{_SIGNATURE}'
    html = _page(
        "Application Status Update",
        f"""
            <p>Your application for <strong class="accent">"{safe_title}"</strong> has been updated.</p>
            <div class="status-update">Application Status: {escape(status)}</div>
        """,
    )
    return OutgoingEmail(
        to=event.student_email,
        subject=f"Research Engine - Application Status Update for {event.project_title}",
        text=text,
        html=html,
        tags={"event_id": str(event.event_id), "template": "status_update"},
    )


def project_closed(event: ProjectClosed) -> OutgoingEmail:
    safe_title = escape(event.project_title)

    text = (
        "Dear Student,\n\n"
        f'The research opportunity "{event.project_title}" is no longer available. '
        "Thank you for your interest.\n\n"
        f"{_SIGNATURE}"
    )
    html = _page(
        "Research Opportunity Update",
        f"""
            <div class="warning">The research opportunity "{safe_title}" is no longer available.</div>
            <p>Thank you for your interest in this opportunity.</p>
        """,
    )
    return OutgoingEmail(
        to=event.student_email,
        subject=f"Research Opportunity No Longer Available: {event.project_title}",
        text=text,
        html=html,
        tags={"event_id": str(event.event_id), "template": "project_closed"},
    )
