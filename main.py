"""
Team Task Bot — Entry Point.

`python main.py` starts the Telegram bot; `taskbot` (installed script) does
the same.
"""

from taskbot.bot.telegram_bot import main

if __name__ == "__main__":
    main()
