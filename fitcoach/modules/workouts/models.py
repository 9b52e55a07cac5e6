# Supabase table: workout_assignments

"""
Expected Supabase table structure:

workout_assignments:
- id: uuid (primary key)
- client_id: uuid (foreign key to clients.id, not null)
- coach_id: uuid (foreign key to auth.users.id, not null) - managing coach
- assigned_by: uuid (not null) - audit
- workout_name: text (not null)
- description, notes, coach_feedback: text (nullable)
- scheduled_date: date (not null)
- status: text (assigned | in_progress | completed | skipped | cancelled)
- started_at, completed_at: timestamptz (nullable)
- created_at: timestamptz

Access: the client and the assigning coach read; only the managing coach of
the referenced client assigns; the client updates progress, the coach leaves
feedback.
"""
