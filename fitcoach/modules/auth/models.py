# Supabase Auth
# Identities live in Supabase's auth.users table; this service stores none.

"""
Supabase Auth provides:
- auth.sign_up() - Register new users (role/first_name/last_name in user_metadata)
- auth.sign_in_with_password() - Authenticate users
- auth.get_user(jwt=...) - Verify a token and return its user

Role resolution for a verified user:
- app_metadata.role (set server-side, cannot be modified by users) wins
- otherwise user_metadata.role
- anything else resolves to "client"

Tokens are short-lived and issued by Supabase; this service never mints them.
"""
