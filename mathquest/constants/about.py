"""Static metadata describing mathquest."""

APP_NAME = "mathquest"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = (
    "Arithmetic and spelling quizzes for kids. Scores are weighted by "
    "per-quiz multipliers and turn into credits a parent can review and adjust."
)
