# Supabase table: checkins

"""
Expected Supabase table structure:

checkins:
- id: uuid (primary key)
- client_id: uuid (foreign key to clients.id, not null)
- coach_id: uuid (foreign key to auth.users.id, not null)
- scheduled_for: timestamptz (not null)
- ends_at: timestamptz (not null)
- status: text (not null, default: 'scheduled') - scheduled | confirmed | completed | cancelled
- notes: text (nullable)
- created_by: uuid (not null) - audit
- created_at: timestamptz (default: now())

Access: the client and the check-in's coach read and update status; only the
managing coach of the client creates check-ins.
"""
