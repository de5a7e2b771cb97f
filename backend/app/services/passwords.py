"""Password policy and temporary password generation."""
import re
import secrets

MIN_PASSWORD_LENGTH = 8
TEMP_PASSWORD_LENGTH = 16
TEMP_PASSWORD_CHARSET = 'abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@#$%^&*'

_CHECKS = (
    ('length', lambda p: len(p) >= MIN_PASSWORD_LENGTH, f'at least {MIN_PASSWORD_LENGTH} characters'),
    ('lowercase', lambda p: re.search(r'[a-z]', p) is not None, 'a lowercase letter'),
    ('uppercase', lambda p: re.search(r'[A-Z]', p) is not None, 'an uppercase letter'),
    ('number', lambda p: re.search(r'\d', p) is not None, 'a number'),
    ('special', lambda p: re.search(r'[^A-Za-z0-9]', p) is not None, 'a special character'),
)


def check_password(password: str) -> dict:
    """
    Evaluate a password against the policy.

    Returns:
        Dict with 'valid', 'strength' (weak/medium/strong), 'score' and
        'missing' (human-readable unmet requirements).
    """
    password = password or ''
    missing = [label for _, check, label in _CHECKS if not check(password)]
    score = len(_CHECKS) - len(missing)
    if score >= 5:
        strength = 'strong'
    elif score >= 3:
        strength = 'medium'
    else:
        strength = 'weak'
    return {
        'valid': not missing,
        'strength': strength,
        'score': score,
        'missing': missing,
    }


def password_error_message(result: dict) -> str:
    return 'Password must contain ' + ', '.join(result['missing'])


def generate_temporary_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    # Regenerate until every character class is present so the result passes the policy
    while True:
        candidate = ''.join(secrets.choice(TEMP_PASSWORD_CHARSET) for _ in range(length))
        if check_password(candidate)['valid']:
            return candidate
