"""Authentication: credentials, tokens and identity providers.

Learn: Three ways in, one session model out.
1. Email + password → bcrypt check
2. Google / Apple → identity token verified against the provider's keys
Every path ends in a short-lived access JWT plus an opaque refresh
token that rotates on each use.
"""
