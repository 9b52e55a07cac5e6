# Supabase table: clients
# This file documents the expected database schema
# Actual operations go through database/gateway.py with the caller's token

"""
Expected Supabase table structure:

clients:
- id: uuid (primary key, default gen_random_uuid())
- user_id: uuid (foreign key to auth.users.id, nullable, unique) - the client; owner
- coach_id: uuid (foreign key to auth.users.id, nullable) - managing coach
- invited_email: text (nullable, lower-case) - who may claim an unlinked profile
- created_by: uuid (not null) - audit; always the creating caller
- phone, package_type, goals, notes: text (nullable)
- height, starting_weight, goal_weight: numeric (nullable)
- date_of_birth: date (nullable)
- created_at: timestamptz (default: now())
- updated_at: timestamptz (nullable)

Access (policies_config.POLICIES["clients"]):
- select: user_id = caller OR coach_id = caller
  OR (user_id IS NULL AND invited_email = caller's email)
- insert: created_by = caller AND ((user_id = caller AND coach_id IS NULL)
  OR (coach_id = caller AND user_id IS NULL))
- update: as select; the written row must still belong to the caller
  (user_id = caller OR coach_id = caller), which is how a claim links user_id
- delete: coach_id = caller
- coach_id, created_by are immutable; user_id can be set once
"""
