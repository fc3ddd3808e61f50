import discord
from discord import app_commands
from discord.ext import commands
import logging
import os
from typing import Any, Dict, List, Optional

from .config_manager import ConfigManager
from .leaderboard import LeaderboardStore
from .model_client import ModelClient
from .models import CategorySet, LeaderboardEntry, QuizSession
from .quiz_controller import QuizController, SessionState

logger = logging.getLogger(__name__)

# Embed colours per theme
PALETTES = {
    True: {'primary': 0x2563EB, 'accent': 0x9333EA, 'warning': 0xEF4444, 'neutral': 0x1E293B},
    False: {'primary': 0x3B82F6, 'accent': 0xA855F7, 'warning': 0xF87171, 'neutral': 0xF8FAFC},
}
ERROR_COLOR = 0xFF0000
LOW_TIME_THRESHOLD = 10
MAX_AUTOCOMPLETE_CHOICES = 25


class QuizBot(commands.Bot):
    """Discord front end for the Quizlator game"""

    def __init__(self, config=None, model_token: Optional[str] = None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,  # Fallback prefix, mainly using slash commands
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}
        self.model_token = model_token

        self.config_manager: Optional[ConfigManager] = None
        self.leaderboard: Optional[LeaderboardStore] = None
        self.model_client: Optional[ModelClient] = None
        self.quiz_controller: Optional[QuizController] = None

        # Where the running game is shown
        self.game_channel: Optional[Any] = None
        self.question_message: Optional[Any] = None
        self._pending_interaction: Optional[discord.Interaction] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            if self.app_config:
                self.apply_configuration()

            self.leaderboard = LeaderboardStore(self.config_manager.get_leaderboard_path())
            self.model_client = ModelClient(
                token=self.model_token,
                model=self.config_manager.get_model_name(),
                timeout=self.config_manager.get_model_timeout()
            )
            self.quiz_controller = QuizController(
                self.model_client,
                self.leaderboard,
                self.config_manager
            )
            self.attach_controller_callbacks()

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def apply_configuration(self):
        """Apply settings from configuration file to the config manager."""
        errors = self.config_manager.apply_config(self.app_config)
        for error in errors:
            logger.warning(f"Configuration value ignored: {error}")
        logger.info("Configuration applied")

    def attach_controller_callbacks(self):
        """Route controller events to Discord messages."""
        self.quiz_controller.on_question = self.show_question
        self.quiz_controller.on_tick = self.update_timer
        self.quiz_controller.on_finished = self.show_results

    async def setup_commands(self):
        """Register all slash commands"""
        try:
            @self.tree.command(name="help", description="Pokaż dostępne komendy")
            async def help_command(interaction: discord.Interaction):
                await self.handle_help(interaction)

            @self.tree.command(name="categories", description="Pokaż kategorie quizu")
            async def categories_command(interaction: discord.Interaction):
                await self.handle_categories(interaction)

            @self.tree.command(name="new_categories", description="Wygeneruj nowe kategorie")
            async def new_categories_command(interaction: discord.Interaction):
                await self.handle_new_categories(interaction)

            @self.tree.command(name="play", description="Rozpocznij quiz z wybranej kategorii")
            @app_commands.describe(category="Kategoria quizu")
            async def play_command(interaction: discord.Interaction, category: str):
                await self.handle_play(interaction, category)

            @play_command.autocomplete("category")
            async def play_autocomplete(interaction: discord.Interaction, current: str):
                return self.category_choices(current)

            @self.tree.command(name="answer", description="Wybierz odpowiedź (numer)")
            @app_commands.describe(number="Numer odpowiedzi")
            async def answer_command(interaction: discord.Interaction, number: int):
                await self.handle_answer(interaction, number)

            @self.tree.command(name="set_questions", description="Ustaw liczbę pytań (1-20)")
            async def set_questions_command(interaction: discord.Interaction, number: int):
                await self.handle_set_questions(interaction, number)

            @self.tree.command(name="theme", description="Przełącz tryb ciemny/jasny")
            async def theme_command(interaction: discord.Interaction):
                await self.handle_theme(interaction)

            @self.tree.command(name="ranking", description="Pokaż/ukryj ostatnie 5 wyników")
            async def ranking_command(interaction: discord.Interaction):
                await self.handle_ranking(interaction)

            @self.tree.command(name="menu", description="Wróć do menu głównego")
            async def menu_command(interaction: discord.Interaction):
                await self.handle_menu(interaction)

            @self.tree.command(name="status", description="Pokaż stan quizu")
            async def status_command(interaction: discord.Interaction):
                await self.handle_status(interaction)

            logger.info("Slash commands registered successfully")

        except Exception as e:
            logger.error(f"Error setting up commands: {e}")
            raise

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        """Stop the countdown and release the model client before disconnecting."""
        if self.quiz_controller is not None:
            await self.quiz_controller.return_to_menu()
        if self.model_client is not None:
            await self.model_client.close()
        await super().close()

    # ------------------------------------------------------------------
    # Embeds
    # ------------------------------------------------------------------

    @property
    def palette(self) -> Dict[str, int]:
        dark_mode = self.config_manager.is_dark_mode() if self.config_manager else True
        return PALETTES[dark_mode]

    def build_question_embed(self, session: QuizSession) -> discord.Embed:
        """Render the current question with its options and remaining time."""
        question = session.current_question
        low_time = session.time_remaining < LOW_TIME_THRESHOLD
        embed = discord.Embed(
            title=f"{session.category} · Pytanie {session.current_index + 1} / {session.total}",
            description=f"**{question.text}**",
            color=self.palette['warning'] if low_time else self.palette['primary']
        )
        options = "\n".join(
            f"`0{i}` {option}" if i < 10 else f"`{i}` {option}"
            for i, option in enumerate(question.options, start=1)
        )
        embed.add_field(name="Odpowiedzi", value=options, inline=False)
        embed.add_field(
            name="🚨 Czas" if low_time else "⏱️ Czas",
            value=f"{session.time_remaining} s",
            inline=True
        )
        embed.add_field(name="Wynik", value=f"{session.score}", inline=True)
        embed.set_footer(text="Odpowiedz komendą /answer <numer>")
        return embed

    def build_menu_embed(self, categories: CategorySet, leaderboard: Optional[List[LeaderboardEntry]] = None) -> discord.Embed:
        """Render the start screen: both category columns and optionally the ranking."""
        embed = discord.Embed(
            title="QUIZLATOR",
            description=f"Ilość pytań: **{self.config_manager.get_question_count()}**",
            color=self.palette['primary']
        )
        embed.add_field(
            name="IT & Development",
            value="\n".join(categories.technical),
            inline=True
        )
        embed.add_field(
            name="Wiedza Ogólna",
            value="\n".join(categories.general),
            inline=True
        )
        if leaderboard is not None:
            embed.add_field(
                name="🏆 Ostatnie 5 wyników",
                value=self.format_leaderboard(leaderboard),
                inline=False
            )
        embed.set_footer(text="/play <kategoria> · /new_categories · /ranking")
        return embed

    @staticmethod
    def format_leaderboard(entries: List[LeaderboardEntry]) -> str:
        if not entries:
            return "Brak rozegranych gier"
        return "\n".join(
            f"**{entry.category.upper()}** ({entry.date}) - {entry.score}/{entry.total}"
            for entry in entries
        )

    def category_choices(self, current: str) -> List[app_commands.Choice[str]]:
        """Autocomplete choices from the current category set."""
        current = (current or "").lower()
        labels = [
            label for label in self.quiz_controller.categories.all()
            if current in label.lower()
        ]
        return [app_commands.Choice(name=label, value=label) for label in labels[:MAX_AUTOCOMPLETE_CHOICES]]

    # ------------------------------------------------------------------
    # Controller callbacks
    # ------------------------------------------------------------------

    async def show_question(self, session: QuizSession):
        """Post a new question message."""
        embed = self.build_question_embed(session)
        if self._pending_interaction is not None:
            interaction = self._pending_interaction
            self._pending_interaction = None
            self.question_message = await interaction.followup.send(embed=embed, wait=True)
        elif self.game_channel is not None:
            self.question_message = await self.game_channel.send(embed=embed)

    async def update_timer(self, session: QuizSession):
        """Edit the question message with the remaining time."""
        if self.question_message is None:
            return
        try:
            await self.question_message.edit(embed=self.build_question_embed(session))
        except discord.HTTPException as e:
            # Keep the countdown running even if Discord rejects the edit
            logger.warning(f"Failed to update timer: {e}")

    async def show_results(self, session: QuizSession, entry: LeaderboardEntry):
        """Post the final score."""
        self.question_message = None
        if self.game_channel is None:
            return
        embed = discord.Embed(
            title="Koniec!",
            description=f"# {entry.score}/{entry.total}",
            color=self.palette['primary']
        )
        embed.add_field(name="Kategoria", value=entry.category, inline=True)
        embed.add_field(name="Data", value=entry.date, inline=True)
        embed.set_footer(text="Menu Główne: /menu")
        await self.game_channel.send(embed=embed)

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="🎯 Komendy Quizlatora",
                description="Quiz generowany przez AI: wybierz kategorię i odpowiadaj na czas.",
                color=self.palette['primary']
            )
            help_embed.add_field(
                name="🎮 Gra",
                value=(
                    "`/categories` - Pokaż kategorie\n"
                    "`/new_categories` - Wygeneruj nowe kategorie\n"
                    "`/play <kategoria>` - Rozpocznij quiz\n"
                    "`/answer <numer>` - Odpowiedz na pytanie\n"
                    "`/menu` - Wróć do menu głównego\n"
                    "`/status` - Stan bieżącego quizu"
                ),
                inline=False
            )
            help_embed.add_field(
                name="⚙️ Ustawienia",
                value=(
                    "`/set_questions <liczba>` - Liczba pytań (1-20)\n"
                    "`/theme` - Tryb ciemny/jasny\n"
                    "`/ranking` - Pokaż/ukryj ranking"
                ),
                inline=False
            )
            help_embed.add_field(
                name="Aktualne ustawienia",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )
            await interaction.response.send_message(embed=help_embed)
        except Exception as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Nie udało się wyświetlić pomocy")

    async def handle_categories(self, interaction: discord.Interaction):
        """Handle /categories command"""
        try:
            await interaction.response.send_message(embed=self.build_menu_embed(
                self.quiz_controller.categories,
                self.visible_leaderboard()
            ))
        except Exception as e:
            logger.error(f"Error in categories command: {e}")
            await self.send_error_response(interaction, "Nie udało się wyświetlić kategorii")

    async def handle_new_categories(self, interaction: discord.Interaction):
        """Handle /new_categories command"""
        try:
            await interaction.response.defer(thinking=True)
            result = await self.quiz_controller.refresh_categories()

            if result.get('busy') or ('user_message' in result and not result['success']):
                await interaction.followup.send(result['user_message'], ephemeral=True)
                return

            # A failed refresh keeps the old categories and shows them unchanged
            await interaction.followup.send(embed=self.build_menu_embed(
                result['categories'],
                self.visible_leaderboard()
            ))
        except Exception as e:
            logger.error(f"Error in new_categories command: {e}")
            await self.send_error_response(interaction, "Nie udało się odświeżyć kategorii")

    async def handle_play(self, interaction: discord.Interaction, category: str):
        """Handle /play command"""
        try:
            if self.quiz_controller.state in (SessionState.LOADING, SessionState.ACTIVE):
                result = await self.quiz_controller.select_category(category)
                await interaction.response.send_message(result['user_message'], ephemeral=True)
                return

            await interaction.response.defer(thinking=True)
            self.game_channel = interaction.channel
            self._pending_interaction = interaction

            result = await self.quiz_controller.select_category(category)
            self._pending_interaction = None

            if result['success']:
                return
            if result.get('stale'):
                await interaction.followup.send("Quiz anulowany.", ephemeral=True)
                return

            embed = discord.Embed(
                title="❌ Błąd",
                description=result.get('user_message', "Spróbuj ponownie."),
                color=ERROR_COLOR
            )
            await interaction.followup.send(embed=embed)
        except Exception as e:
            self._pending_interaction = None
            logger.error(f"Error in play command: {e}")
            await self.send_error_response(interaction, "Nie udało się rozpocząć quizu")

    async def handle_answer(self, interaction: discord.Interaction, number: int):
        """Handle /answer command"""
        try:
            question = self.quiz_controller.get_current_question()
            if question is None:
                await interaction.response.send_message(
                    "❌ Brak aktywnego pytania. Wybierz kategorię komendą /play.",
                    ephemeral=True
                )
                return

            if self.game_channel is not None and interaction.channel_id != self.game_channel.id:
                await interaction.response.send_message("❌ Quiz trwa na innym kanale.", ephemeral=True)
                return

            if not 1 <= number <= len(question.options):
                await interaction.response.send_message(
                    f"❌ Wybierz numer od 1 do {len(question.options)}",
                    ephemeral=True
                )
                return

            question_index = self.quiz_controller.session.current_index

            # Acknowledge first; the next question is posted by the controller callback
            await interaction.response.defer(ephemeral=True, thinking=False)
            result = await self.quiz_controller.submit_answer(
                question.options[number - 1], question_index=question_index
            )

            if not result['success']:
                await interaction.followup.send(result['user_message'], ephemeral=True)
            elif result['correct']:
                await interaction.followup.send("✅ Dobrze!", ephemeral=True)
            else:
                await interaction.followup.send(
                    f"❌ Źle! Poprawna odpowiedź: **{result['correct_answer']}**",
                    ephemeral=True
                )
        except Exception as e:
            logger.error(f"Error in answer command: {e}")
            await self.send_error_response(interaction, "Nie udało się zapisać odpowiedzi")

    async def handle_set_questions(self, interaction: discord.Interaction, number: int):
        """Handle /set_questions command"""
        try:
            result = self.config_manager.set_question_count(number)
            await interaction.response.send_message(
                result['user_message'],
                ephemeral=not result['success']
            )
        except Exception as e:
            logger.error(f"Error in set_questions command: {e}")
            await self.send_error_response(interaction, "Nie udało się ustawić liczby pytań")

    async def handle_theme(self, interaction: discord.Interaction):
        """Handle /theme command"""
        try:
            result = self.config_manager.toggle_dark_mode()
            embed = discord.Embed(description=result['user_message'], color=self.palette['neutral'])
            await interaction.response.send_message(embed=embed)
        except Exception as e:
            logger.error(f"Error in theme command: {e}")
            await self.send_error_response(interaction, "Nie udało się zmienić motywu")

    async def handle_ranking(self, interaction: discord.Interaction):
        """Handle /ranking command"""
        try:
            result = self.config_manager.toggle_leaderboard()
            if not result['new_value']:
                await interaction.response.send_message("🏆 Ranking ukryty", ephemeral=True)
                return

            embed = discord.Embed(
                title="🏆 Ostatnie 5 wyników",
                description=self.format_leaderboard(self.quiz_controller.get_leaderboard()),
                color=self.palette['accent']
            )
            await interaction.response.send_message(embed=embed)
        except Exception as e:
            logger.error(f"Error in ranking command: {e}")
            await self.send_error_response(interaction, "Nie udało się wyświetlić rankingu")

    async def handle_menu(self, interaction: discord.Interaction):
        """Handle /menu command"""
        try:
            await self.quiz_controller.return_to_menu()
            self.question_message = None
            self._pending_interaction = None
            await interaction.response.send_message(embed=self.build_menu_embed(
                self.quiz_controller.categories,
                self.visible_leaderboard()
            ))
        except Exception as e:
            logger.error(f"Error in menu command: {e}")
            await self.send_error_response(interaction, "Nie udało się wrócić do menu")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            state = self.quiz_controller.state
            progress = self.quiz_controller.get_session_progress()

            embed = discord.Embed(title="📊 Stan quizu", color=self.palette['primary'])
            if state == SessionState.LOADING:
                embed.description = f"Buduję quiz: **{self.quiz_controller.pending_category}**..."
            elif progress is None:
                embed.description = "Brak aktywnego quizu. Użyj `/play <kategoria>`."
            else:
                embed.add_field(name="Kategoria", value=progress['category'], inline=True)
                embed.add_field(
                    name="Pytanie",
                    value=f"{progress['current_question']}/{progress['total_questions']}",
                    inline=True
                )
                embed.add_field(name="Wynik", value=str(progress['score']), inline=True)
                if state == SessionState.ACTIVE:
                    embed.add_field(name="⏱️ Czas", value=f"{progress['time_remaining']} s", inline=True)
                else:
                    embed.add_field(name="Status", value="Zakończony", inline=True)

            await interaction.response.send_message(embed=embed, ephemeral=True)
        except Exception as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Nie udało się pobrać stanu quizu")

    def visible_leaderboard(self) -> Optional[List[LeaderboardEntry]]:
        if not self.config_manager.get_quiz_settings().show_leaderboard:
            return None
        return self.quiz_controller.get_leaderboard()

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Błąd"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=ERROR_COLOR
            )
            embed.set_footer(text="Spróbuj ponownie lub użyj /help")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")


async def run_bot(token=None, config=None, model_token=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    if not model_token:
        model_token = os.getenv('HF_TOKEN')

    bot = QuizBot(config, model_token=model_token)

    try:
        logger.info("Starting Quizlator bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
