# Supabase tables: curations, curation_items, tags, curation_tags
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

curations:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null) - owner/creator
- title: text (not null)
- description: text (nullable)
- cover_image_url: text (nullable)
- visibility: visibility_type (not null, default: 'public') - values: public, private, followers_only
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

curation_items:
- id: uuid (primary key)
- curation_id: uuid (foreign key to curations.id, not null)
- title: text (not null)
- description: text (nullable)
- external_url: text (nullable)
- image_url: text (nullable)
- position: integer (not null, default: 0) - rank within the curation, 0 first
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

tags:
- id: uuid (primary key)
- name: text (unique, not null, lowercase)
- created_at: timestamp (default: now())

curation_tags:
- curation_id: uuid (foreign key to curations.id, not null)
- tag_id: uuid (foreign key to tags.id, not null)
- primary key (curation_id, tag_id)

Positions are assigned by the owner and are not required to be unique or
gap-free; new items are appended at max(position) + 1.
"""
