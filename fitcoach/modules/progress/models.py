# Supabase tables: weight_logs, workout_logs
# Both inherit ownership from the client row they point at.

"""
Expected Supabase table structure:

weight_logs:
- id: uuid (primary key)
- client_id: uuid (foreign key to clients.id, not null)
- weight: numeric (not null)
- logged_on: date (not null)
- notes: text (nullable)
- created_by: uuid (not null) - audit
- created_at: timestamptz (default: now())

workout_logs:
- id: uuid (primary key)
- client_id: uuid (foreign key to clients.id, not null)
- workout_name: text (not null)
- started_at: timestamptz (not null)
- ended_at: timestamptz (nullable)
- completed_exercises: integer (default: 0)
- notes: text (nullable)
- created_by: uuid (not null) - audit
- created_at: timestamptz (default: now())

Access: the client (clients.user_id) and the managing coach (clients.coach_id)
may read and insert; only the client updates or deletes.
"""
