#!/usr/bin/env python3
"""Interactive CLI for the feedback analytics system.

This allows users to:
1. Classify ad-hoc feedback text (with an optional rating)
2. Seed a demo form with sample feedback
3. Render the analytics snapshot for a form owner
"""
import asyncio
import sys
from datetime import timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box
from rich.prompt import Prompt

from analytics import AnalyticsService
from config import config
from database import Database, FeedbackRepository
from enrichment import FeedbackEnricher
from models import utcnow
from schemas import AnalyticsSnapshot, SentimentVerdict
from sentiment_classifier import SentimentClassifier


console = Console()

DEMO_USER_ID = "demo-user"

DEMO_RESPONSES = [
    {"rating": "5", "comments": "Amazing checkout experience, the staff were friendly and fast."},
    {"rating": "4", "comments": "Good service overall, delivery was quick."},
    {"rating": "1", "comments": "Terrible support, my order arrived broken and nobody replied."},
    {"comments": "The new dashboard is confusing and slow to load."},
    {"comments": "Love the new dashboard design, very intuitive."},
    {"rating": "3", "comments": "It was okay. Delivery took a while."},
    {"stars": 2, "comments": "Disappointed with the delivery delay."},
    {"comments": "Checkout keeps failing with an error on the payment page."},
]


class InteractiveAnalyticsSystem:
    """Interactive feedback analytics system."""

    def __init__(self, database: Database):
        """Initialize the system."""
        self.repository = FeedbackRepository(database)
        self.classifier = SentimentClassifier.from_config(config)
        self.analytics = AnalyticsService(
            self.repository,
            FeedbackEnricher(self.classifier, self.repository)
        )

    def display_verdict(self, verdict: SentimentVerdict):
        """Display a classifier verdict."""
        table = Table(
            title=f"{verdict.emoji} Sentiment Verdict",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold magenta"
        )

        table.add_column("Attribute", style="cyan", width=20)
        table.add_column("Value", style="green")

        table.add_row("Label", verdict.label)
        table.add_row("Score", f"{verdict.score:.2f}")
        table.add_row("Confidence", f"{verdict.confidence:.2f}")
        table.add_row("Keywords", ", ".join(verdict.keywords) or "-")
        table.add_row("Emotions", ", ".join(verdict.emotions) or "-")
        table.add_row("Source", verdict.source or "-")
        if verdict.summary:
            table.add_row("Summary", verdict.summary)

        console.print(table)

    def display_snapshot(self, snapshot: AnalyticsSnapshot):
        """Display an analytics snapshot."""
        overview = snapshot.overview
        distribution = snapshot.sentiment_distribution
        console.print(Panel(
            f"[bold]Feedback:[/bold] {overview.total_feedback}    "
            f"[bold]Avg sentiment:[/bold] {overview.average_sentiment_score:.2f}    "
            f"[bold]Forms:[/bold] {overview.total_forms} ({overview.active_forms} active)\n"
            f"[green]Positive {distribution.positive}[/green]  "
            f"[yellow]Neutral {distribution.neutral}[/yellow]  "
            f"[red]Negative {distribution.negative}[/red]",
            title="📊 Overview",
            border_style="bold blue",
            box=box.ROUNDED
        ))

        trends = Table(title="📈 Daily Trends", box=box.SIMPLE, header_style="bold magenta")
        trends.add_column("Date", style="cyan")
        trends.add_column("Feedback", justify="right")
        trends.add_column("Avg score", justify="right")
        averages = {point.date: point.average_score for point in snapshot.sentiment_trends}
        for point in snapshot.feedback_trends:
            average = averages.get(point.date)
            trends.add_row(point.date, str(point.count), f"{average:.2f}" if average is not None else "-")
        console.print(trends)

        forms = Table(title="📝 Form Performance", box=box.SIMPLE, header_style="bold magenta")
        forms.add_column("Form", style="cyan")
        forms.add_column("Feedback", justify="right")
        forms.add_column("Avg score", justify="right")
        for entry in snapshot.form_performance:
            forms.add_row(entry.title, str(entry.total_feedback), f"{entry.average_sentiment_score:.2f}")
        console.print(forms)

        ai = snapshot.ai_insights
        lines = [f"[bold]Top keywords:[/bold] {', '.join(ai.top_keywords) or '-'}"]
        if ai.emotion_analysis:
            emotions = ", ".join(f"{emotion} {pct:.0f}%" for emotion, pct in ai.emotion_analysis.items())
            lines.append(f"[bold]Emotions:[/bold] {emotions}")
        lines.extend(f"→ {message}" for message in ai.recommendations)
        lines.extend(f"[yellow]↗ {trend}[/yellow]" for trend in ai.emerging_trends)
        lines.extend(f"[green]✓ {insight}[/green]" for insight in ai.actionable_insights)

        console.print(Panel(
            "\n".join(lines),
            title="🤖 AI Insights",
            border_style="bold green",
            box=box.ROUNDED,
            padding=(1, 2)
        ))

    async def classify_interactive(self):
        text = Prompt.ask("Feedback text", default="")
        rating_text = Prompt.ask("Rating 1-5 (blank for none)", default="")
        rating = int(rating_text) if rating_text.strip().isdigit() else None

        console.print("[yellow]🤖 Classifying...[/yellow]")
        verdict = await self.classifier.classify(text, rating)
        self.display_verdict(verdict)

    async def seed_demo(self):
        """Create a demo form with sample feedback spread over the last days."""
        form = await self.repository.save_form(DEMO_USER_ID, "Demo customer survey")
        now = utcnow()
        for offset, responses in enumerate(DEMO_RESPONSES):
            await self.repository.save_feedback(
                form.id,
                DEMO_USER_ID,
                responses,
                created_at=now - timedelta(days=len(DEMO_RESPONSES) - offset, hours=offset)
            )
        console.print(
            f"[green]✅ Seeded {len(DEMO_RESPONSES)} feedback entries "
            f"for user '{DEMO_USER_ID}' (form {form.id})[/green]"
        )

    async def show_analytics(self):
        user_id = Prompt.ask("User ID", default=DEMO_USER_ID)
        form_id = Prompt.ask("Form ID", default="all")

        console.print("[bold]Computing analytics...[/bold]")
        snapshot = await self.analytics.get_analytics(user_id, form_id)
        self.display_snapshot(snapshot)

        if self.classifier.cache:
            stats = self.classifier.cache.get_stats()
            console.print(
                f"\n[dim]Cache: {stats['hits']} hits, "
                f"{stats['misses']} misses, "
                f"{stats['size']} entries[/dim]"
            )

    def display_welcome(self):
        """Display welcome message."""
        ai_line = (
            f"[green]✓[/green] AI: {config.AI_MODEL}"
            if self.classifier.ai_available
            else "[yellow]✗[/yellow] AI: not configured"
        )
        welcome = f"""
[bold cyan]Feedback Sentiment Analytics[/bold cyan]
[dim]Interactive CLI Mode[/dim]

  [bold]1[/bold]  Classify feedback text / rating
  [bold]2[/bold]  Seed demo feedback
  [bold]3[/bold]  Show analytics
  [bold]q[/bold]  Quit

Using:
  {ai_line}
  [green]✓[/green] Fallback: lexical word-count analyzer
        """

        console.print(Panel(
            welcome,
            border_style="bold blue",
            box=box.DOUBLE,
            padding=(1, 2)
        ))

    async def run_interactive(self):
        """Run the interactive CLI loop."""
        self.display_welcome()
        actions = {
            "1": self.classify_interactive,
            "2": self.seed_demo,
            "3": self.show_analytics,
        }

        while True:
            console.print()
            choice = Prompt.ask("Choose an action", choices=["1", "2", "3", "q"], default="3")

            if choice == "q":
                console.print("\n[cyan]Goodbye![/cyan]\n")
                break

            try:
                await actions[choice]()
            except Exception as e:
                console.print(f"\n[red]⚠️  {e}[/red]")


async def main():
    """Main entry point."""
    console.print("[cyan]Initializing database...[/cyan]")
    database = Database(config.DATABASE_URL)
    await database.init_db()

    system = InteractiveAnalyticsSystem(database)

    try:
        await system.run_interactive()
    except KeyboardInterrupt:
        console.print("\n\n[cyan] Goodbye![/cyan]\n")
        sys.exit(0)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
