#!/usr/bin/env python3
"""
Quizlator - Main Entry Point

Runs the AI quiz bot on Discord. Questions and categories are generated by a
Hugging Face chat model.

Usage:
    python main.py

Configuration:
    1. Set your Discord bot token and Hugging Face token in config.json
    2. Or set the DISCORD_BOT_TOKEN and HF_TOKEN environment variables
    3. Customize quiz and model settings in config.json as needed

Environment Variables:
    DISCORD_BOT_TOKEN: Your Discord bot token (overrides config.json)
    HF_TOKEN: Hugging Face access token (overrides config.json)
"""

import asyncio
import sys
import os
import json
import logging
from pathlib import Path

TOKEN_PLACEHOLDERS = ("YOUR_DISCORD_BOT_TOKEN_HERE", "YOUR_HF_TOKEN_HERE")


def load_config(config_path=Path("config.json")):
    """Load configuration from config.json file."""
    if not config_path.exists():
        print("❌ Error: config.json not found!")
        print("Please create config.json and configure your tokens.")
        sys.exit(1)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ Error: Invalid JSON in config.json: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error loading config.json: {e}")
        sys.exit(1)


def get_bot_token(config):
    """Get bot token from environment variable or config file."""
    token = os.getenv('DISCORD_BOT_TOKEN')
    if token:
        return token

    token = config.get('bot', {}).get('token')
    if not token or token in TOKEN_PLACEHOLDERS:
        print("❌ Error: Discord bot token not configured!")
        print("Either:")
        print("  1. Set DISCORD_BOT_TOKEN environment variable")
        print("  2. Update the 'bot.token' field in config.json")
        sys.exit(1)

    return token


def get_model_token(config):
    """Get the Hugging Face token; None means anonymous access."""
    token = os.getenv('HF_TOKEN')
    if token:
        return token

    token = config.get('model', {}).get('token')
    if not token or token in TOKEN_PLACEHOLDERS:
        return None
    return token


def setup_logging_from_config(config):
    """Set up console, bot.log and errors.log handlers from configuration."""
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    log_directory = Path(log_config.get('log_directory', './logs/'))

    log_directory.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_directory / "bot.log", encoding='utf-8')
        ]
    )

    error_handler = logging.FileHandler(log_directory / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)
    logging.getLogger('huggingface_hub').setLevel(logging.WARNING)


async def run_bot_with_config():
    """Run the bot with configuration."""
    config = load_config()
    setup_logging_from_config(config)

    token = get_bot_token(config)
    model_token = get_model_token(config)
    if model_token is None:
        logging.getLogger(__name__).warning("No Hugging Face token configured, using anonymous access")

    from quizlator.bot import run_bot
    await run_bot(token, config, model_token)


if __name__ == "__main__":
    try:
        print("🤖 Starting Quizlator...")
        asyncio.run(run_bot_with_config())
    except KeyboardInterrupt:
        print("\n👋 Bot stopped by user")
    except Exception as e:
        print(f"❌ Failed to start bot: {e}")
        sys.exit(1)
