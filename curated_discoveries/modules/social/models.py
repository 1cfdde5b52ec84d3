# Supabase tables: likes, follows, saved_curations, shares, comments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

likes:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- curation_id: uuid (foreign key to curations.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (user_id, curation_id)

follows:
- id: uuid (primary key)
- follower_id: uuid (foreign key to profiles.id, not null)
- following_id: uuid (foreign key to profiles.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (follower_id, following_id)
- check constraint follower_id <> following_id

saved_curations:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- curation_id: uuid (foreign key to curations.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (user_id, curation_id)

shares:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- curation_id: uuid (foreign key to curations.id, not null)
- platform: text (not null) - values: twitter, facebook, linkedin, copy
- created_at: timestamp (default: now())

comments:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- curation_id: uuid (foreign key to curations.id, not null)
- content: text (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

The unique constraints back the idempotent upserts in SocialFacade; without
them a repeated like/follow/save would insert a duplicate row.
"""
