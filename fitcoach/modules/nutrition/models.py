# Supabase table: nutrition_plans

"""
Expected Supabase table structure:

nutrition_plans:
- id: uuid (primary key)
- client_id: uuid (foreign key to clients.id, not null)
- coach_id: uuid (foreign key to auth.users.id, not null) - managing coach
- assigned_by: uuid (not null) - audit
- title: text (not null)
- description, notes: text (nullable)
- protein_target, carbs_target, fat_target: integer grams (not null)
- calories_target: integer kcal (not null)
- start_date: date (not null)
- end_date: date (nullable)
- is_active: boolean (default: true)
- created_at, updated_at: timestamptz

Access: the client and the plan's coach read; writes require the caller to be
both the plan's coach and the managing coach of the referenced client.
"""
