"""Message Formatting — pure builders for log lines, member notices and review items.

Invariants:
    - All functions are pure (no IO, no async, no DB)
    - Log lines start with "[<scope label>]": "Main" for the main scope, else the scope name
    - Member references use the platform mention form <@id>
    - Issue lines: logs use the moderator-facing `log`, member notices use `value`
"""

from gatekeeper.core.profile_types import PlayerProfileSnapshot
from gatekeeper.core.requirement_rules import Issue

DEFAULT_SUCCESS_MESSAGE = (
    "You have successfully been verified. Please make sure to read the applicable "
    "rules/guidelines. If you have any questions, please message a staff member. Thanks!"
)


def scope_label(scope_name: str, is_main: bool) -> str:
    return "Main" if is_main else scope_name


def mention(member_id: str) -> str:
    return f"<@{member_id}>"


def _tried(label: str, member_id: str, name: str | None) -> str:
    if name:
        return f"[{label}] {mention(member_id)} tried to verify as **`{name}`**"
    return f"[{label}] {mention(member_id)} tried to verify"


def _log_issue_lines(issues: list[Issue]) -> str:
    return "\n".join(f"- **[{issue.key}]** {issue.log}" for issue in issues)


def format_member_issues(issues: list[Issue]) -> str:
    return "\n".join(f"- **{issue.key}**: {issue.value}" for issue in issues)


# ─── Session log lines ───────────────────────────────────────────

def fmt_started(label: str, member_id: str) -> str:
    return f"[{label}] {mention(member_id)} has started the verification process."


def fmt_proof_issued(label: str, member_id: str, name: str, code: str) -> str:
    return (
        f"[{label}] {mention(member_id)} will be trying to verify under the name: "
        f"**`{name}`** with code **`{code}`**."
    )


def fmt_canceled(label: str, member_id: str) -> str:
    return f"[{label}] {mention(member_id)} has canceled the verification process."


def fmt_timed_out(label: str, member_id: str, state: str) -> str:
    return (
        f"[{label}] {mention(member_id)} has stopped the verification process. "
        f"This occurred when the person did not respond in time (state: {state})."
    )


def fmt_name_taken(label: str, member_id: str, name: str) -> str:
    return (
        f"{_tried(label, member_id, name)}, but this name is already registered "
        "to another member."
    )


def fmt_blacklisted(
    label: str, member_id: str, name: str, matched_name: str, moderation_id: str | None,
) -> str:
    return (
        f"{_tried(label, member_id, name)}, but they are blacklisted from this server "
        f"under the name: `{matched_name}`. The corresponding Moderation ID is: "
        f"`{moderation_id or 'N/A'}`."
    )


def fmt_fatal_issues(label: str, member_id: str, name: str | None, issues: list[Issue]) -> str:
    return (
        f"{_tried(label, member_id, name)}, but did not meet the requirements. "
        "These issues are listed below:\n" + _log_issue_lines(issues)
    )


def fmt_try_again_issues(label: str, member_id: str, name: str | None, issues: list[Issue]) -> str:
    return (
        f"{_tried(label, member_id, name)}, but there were several minor issues with "
        "the person's profile. These issues are listed below:\n" + _log_issue_lines(issues)
    )


def fmt_manual_offered(label: str, member_id: str, name: str | None, issues: list[Issue]) -> str:
    return (
        f"{_tried(label, member_id, name)}, but there were several issues that need "
        "manual review. These issues are listed below:\n" + _log_issue_lines(issues)
    )


def fmt_manual_declined(label: str, member_id: str, name: str | None) -> str:
    return f"{_tried(label, member_id, name)}, but did not want to get manually verified."


def fmt_manual_escalated(label: str, member_id: str, name: str | None) -> str:
    return f"{_tried(label, member_id, name)} and has been sent to manual verification."


def fmt_manual_handoff_failed(label: str, member_id: str, name: str | None) -> str:
    return (
        f"{_tried(label, member_id, name)}, but the manual verification request could not "
        "be recorded. They can start verification again."
    )


def fmt_success(label: str, member_id: str, name: str | None, is_main: bool) -> str:
    if is_main and name:
        return f"[{label}] {mention(member_id)} has successfully verified as **`{name}`**."
    return f"[{label}] {mention(member_id)} has successfully been verified in this section."


# ─── Moderator disposition lines ─────────────────────────────────

def fmt_manual_accepted(
    label: str, member_id: str, name: str, moderator_id: str, is_main: bool,
) -> str:
    if is_main:
        return (
            f"[{label}] {mention(member_id)} has been manually verified as **`{name}`** "
            f"by {mention(moderator_id)}."
        )
    return f"[{label}] {mention(member_id)} has been manually verified by {mention(moderator_id)}."


def fmt_manual_denied(
    label: str, member_id: str, name: str, moderator_id: str, is_main: bool,
) -> str:
    if is_main:
        return (
            f"[{label}] {mention(member_id)} has tried to verify as **`{name}`**, but their "
            f"manual verification request was __denied__ by {mention(moderator_id)}."
        )
    return (
        f"[{label}] {mention(member_id)} has tried to get manually verified, but was "
        f"__denied__ manual verification by {mention(moderator_id)}."
    )


# ─── Review item ─────────────────────────────────────────────────

def fmt_review_item(
    scope_name: str, member_id: str, snapshot: PlayerProfileSnapshot, issues: list[Issue],
) -> str:
    """Text posted to a scope's manual review queue."""
    lines = [
        f"[{scope_name}] Manual Verification: **{snapshot.name}**",
        "",
        f"The following user tried to verify in the section: **`{scope_name}`**.",
        "",
        "__**Member**__",
        f"- Mention: {mention(member_id)} ({member_id})",
        "",
        "__**Profile**__",
        f"- Name: **`{snapshot.name}`**",
        f"- Rank: **`{snapshot.rank}`**",
        f"- Alive Fame: **`{snapshot.alive_fame}`**",
    ]
    if snapshot.created:
        lines.append(f"- Account Created: **`{snapshot.created}`**")
    elif snapshot.first_seen:
        lines.append(f"- First Seen: **`{snapshot.first_seen}`**")
    else:
        lines.append("- Account Created: **`N/A`**")
    lines.append(f"- Last Seen: **`{snapshot.last_seen}`**")
    if snapshot.guild:
        lines.append(f"- Guild: **`{snapshot.guild}`**")
        lines.append(f"- Guild Rank: **`{snapshot.guild_rank}`**")
    lines.append("- Description: ```\n" + "\n".join(snapshot.description) + "\n```")
    lines.append("")
    lines.append("__**Reason(s) for Manual Verification**__")
    lines.extend(f"- **{issue.key}**: {issue.log}" for issue in issues)
    return "\n".join(lines)


# ─── Member notices ──────────────────────────────────────────────

def fmt_member_accepted(scope_name: str, success_message: str | None) -> str:
    return f"[{scope_name}] {success_message or DEFAULT_SUCCESS_MESSAGE}"


def fmt_member_denied(scope_name: str) -> str:
    return (
        f"[{scope_name}] Your manual verification request was **denied**. If you have any "
        "questions regarding why your request was denied, please message a staff member."
    )
