"""Discord integration for tourbridge.

The bot runs in-process with FastAPI, sharing the same event loop. It
posts tournament announcements to the configured channel and answers the
/tournaments slash command.

Optional: if DISCORD_BOT_TOKEN is not set, the app runs without Discord.
"""
