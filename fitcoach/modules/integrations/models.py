# Supabase table: device_integrations

"""
Expected Supabase table structure:

device_integrations:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null) - owner
- provider: text (not null) - e.g. fitbit, garmin, feelfit
- access_token: text (not null) - provider secret
- refresh_token: text (nullable) - provider secret
- token_expires_at: timestamptz (nullable)
- is_active: boolean (default: true)
- last_synced_at: timestamptz (nullable)
- created_at: timestamptz (default: now())
- unique constraint on (user_id, provider)

Access: every action requires user_id = caller. Coaches never see these rows.
"""
