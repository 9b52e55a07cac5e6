# Supabase table: messages

"""
Expected Supabase table structure:

messages:
- id: uuid (primary key)
- sender_id: uuid (foreign key to auth.users.id, not null) - audit; always the caller
- receiver_id: uuid (foreign key to auth.users.id, not null)
- content: text (not null)
- is_read: boolean (default: false)
- created_at: timestamptz (default: now())

Access: sender or receiver may read; only the sender inserts (as themselves);
only the receiver may update (mark as read). No deletes.
"""
