"""Daily plan survey via interactive questionnaire."""

import questionary
from questionary import Style

from ...config import DEFAULT_EXERCISES_COUNT, DEFAULT_TIME_MINUTES, MAX_EXERCISES, MIN_EXERCISES
from ...models.survey import SubscriptionTier, SurveyInput

# Custom style for questionnaire
custom_style = Style(
    [
        ("qmark", "fg:#2e7d32 bold"),
        ("question", "bold"),
        ("answer", "fg:#f9a825 bold"),
        ("pointer", "fg:#2e7d32 bold"),
        ("highlighted", "fg:#2e7d32 bold"),
        ("selected", "fg:#558b2f"),
        ("separator", "fg:#558b2f"),
        ("instruction", ""),
        ("text", ""),
    ]
)

CATEGORY_CHOICES = [
    ("Physical (strength, speed, endurance)", "physical"),
    ("Technique (ball control, passing, shooting)", "technique"),
    ("Tactics (positioning, decision making)", "tactics"),
    ("Goalkeeping", "goalkeeping"),
    ("Recovery (mobility, stretching)", "recovery"),
]


class ManualSurveyClient:
    """Interactive questionnaire for the daily plan survey."""

    def __init__(self, tier: SubscriptionTier = SubscriptionTier.FREE):
        self.tier = tier

    async def collect_survey(self) -> SurveyInput:
        """Run the questionnaire and return the survey answers."""
        print("\n=== Today's Training Survey ===\n")

        count_str = await questionary.text(
            f"How many exercises today? ({MIN_EXERCISES}-{MAX_EXERCISES})",
            default=str(DEFAULT_EXERCISES_COUNT),
            validate=_validate_count,
            style=custom_style,
        ).ask_async()
        exercises_count = int(count_str) if count_str else DEFAULT_EXERCISES_COUNT

        categories = await questionary.checkbox(
            "Which areas do you want to work on? (leave empty for any)",
            choices=[questionary.Choice(label, value) for label, value in CATEGORY_CHOICES],
            style=custom_style,
        ).ask_async()

        time_minutes = await questionary.select(
            "How much time do you have?",
            choices=[
                questionary.Choice("15 minutes", 15),
                questionary.Choice("30 minutes", 30),
                questionary.Choice("45 minutes", 45),
                questionary.Choice("60 minutes", 60),
            ],
            style=custom_style,
        ).ask_async()

        return SurveyInput(
            exercises_count=exercises_count,
            categories=frozenset(categories or []),
            time_minutes=time_minutes or DEFAULT_TIME_MINUTES,
            tier=self.tier,
        )


def _validate_count(text: str) -> bool | str:
    try:
        value = int(text)
    except ValueError:
        return "Enter a number"
    if not MIN_EXERCISES <= value <= MAX_EXERCISES:
        return f"Choose between {MIN_EXERCISES} and {MAX_EXERCISES}"
    return True
