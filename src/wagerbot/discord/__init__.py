"""Discord integration for Wagerbot.

The bot runs in-process with FastAPI, sharing the same event loop. Slash
commands start game sessions; every component interaction is routed through
the ComponentRouter owned by the app.

Optional: if DISCORD_BOT_TOKEN is not set, the app runs without Discord.
"""
