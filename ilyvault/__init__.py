"""Terminal account registration with e-mail verification and an Argon2id master password."""

__version__ = "0.1.0"

__all__ = ["__version__"]