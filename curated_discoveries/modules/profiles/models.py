# Supabase tables: profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- username: text (unique, not null, lowercase [a-z0-9_], 3-30 chars)
- full_name: text (nullable)
- email: text (nullable) - copied from auth.users at sign-up
- avatar_url: text (nullable)
- cover_url: text (nullable)
- bio: text (nullable)
- website: text (nullable)
- email_verified: boolean (default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

A profile row is created right after the auth identity at sign-up, is only
mutated by its owner and is never deleted by the application. Identities
without a profile row are removed by the reconciliation job
(modules/maintenance/reconciler.py).
"""
