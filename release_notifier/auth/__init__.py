from release_notifier.auth.dependencies import require_token, token_matches

__all__ = [
    "require_token",
    "token_matches",
]
