import os

# Comma-separated channel addresses (phone numbers) allowed to capture
# Example: ALLOWED_OPERATORS=56911111111,56922222222
ALLOWED_OPERATORS = [a.strip().lstrip("+") for a in os.getenv("ALLOWED_OPERATORS", "").split(",") if a.strip()]

def is_authorized(address: str) -> bool:
    """Checks if a broker's address is allowed to open captures."""
    if not ALLOWED_OPERATORS:
        # If not set, allow everyone for easier testing (CAUTION)
        return True
    return str(address).lstrip("+") in ALLOWED_OPERATORS
