"""
Human-readable round summaries.
"""
from .models import GameResult, StatisticsAggregate

DATE_FORMAT = "%d.%m.%y %H:%M"


def format_results(round_result: GameResult, aggregate: StatisticsAggregate) -> str:
    """
    Build the summary shown when a round ends.

    Args:
        round_result: The round that was just completed
        aggregate: Statistics after the round was stored

    Returns:
        Multi-line summary with the round score, games played, best game
        and total accuracy
    """
    return (
        f"Your result: {round_result.correct}/{round_result.total}\n"
        f"Quizzes played: {aggregate.games_count}\n"
        f"Best game: {format_best_game(aggregate.best_game)}\n"
        f"Average accuracy: {aggregate.total_accuracy:.2f}%"
    )


def format_best_game(best_game: GameResult) -> str:
    if best_game.total <= 0:
        return "none yet"
    return f"{best_game.correct}/{best_game.total} ({best_game.date.strftime(DATE_FORMAT)})"
