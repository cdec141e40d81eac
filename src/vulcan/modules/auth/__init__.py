"""
Authentication: sign in, token refresh and two-factor authentication.
"""
