"""Channel message text for tournament announcements.

Plain Discord markdown strings; the sink decides how to deliver them.
"""

from __future__ import annotations

from collections.abc import Sequence

from tourbridge.models.tournament import TournamentRecord, TournamentResults

NO_ACTIVE_TOURNAMENTS = "❌ There are no active tournaments right now."

PLACING_LABELS = ("🥇 **Winner:**", "🥈 **Runner-up:**", "🥉 **Third place:**")


def join_url(client_url: str, room: str) -> str:
    return f"{client_url.rstrip('/')}/{room}"


def format_open_announcement(fmt: str, name: str, room: str, link: str) -> str:
    lines = ["🏆 **Tournament Open!**", f"**Name:** {name}"]
    if fmt and fmt != name:
        lines.append(f"**Format:** {fmt}")
    lines.append(f"**Room:** {room}")
    lines.append(f"Join → {link}")
    return "\n".join(lines)


def format_team(names: Sequence[str]) -> str:
    return " & ".join(names)


def format_result_summary(record: TournamentRecord, results: TournamentResults) -> str:
    """Podium summary for a finished tournament."""
    lines = [f"🏁 **{record.name}** has finished in **{record.room}**!"]
    for label, names in zip(PLACING_LABELS, results.placings, strict=False):
        if not names:
            continue
        lines.append(f"{label} {format_team(names)}")
    return "\n".join(lines)


def format_finished(record: TournamentRecord) -> str:
    """Used when an end event carried no usable results."""
    return f"🏁 **{record.name}** ({record.room}) has finished."


def format_active_list(records: Sequence[TournamentRecord]) -> str:
    if not records:
        return NO_ACTIVE_TOURNAMENTS
    body = "\n".join(f"• **{r.name}** ({r.room})" for r in records)
    return "🏆 **Active Tournaments:**\n" + body
