"""bday — backend for the birthday reminder app.

Owns user accounts and their session lifecycle: password and social
(Google / Apple) sign-in, short-lived access tokens, and rotating
single-use refresh tokens.
"""

__version__ = "0.1.0"
