"""
Masked secret prompts: master passphrase and new account passwords.
"""
import getpass

PASSWORD_ATTEMPTS = 3


def ask_passphrase(prompt: str = "Vault passphrase: ") -> str:
    """Read the master passphrase without echo."""
    passphrase = getpass.getpass(prompt)
    if not passphrase:
        raise ValueError("empty passphrase")
    return passphrase


def ask_new_password(label: str, attempts: int = PASSWORD_ATTEMPTS) -> str:
    """Read a new account password twice; both entries must match."""
    for _ in range(attempts):
        first = getpass.getpass(f"Password for {label}: ")
        if not first:
            print("Password must not be empty.")
            continue
        second = getpass.getpass("Repeat password: ")
        if first == second:
            return first
        print("Passwords do not match.")
    raise ValueError(f"no matching password entered after {attempts} attempts")
