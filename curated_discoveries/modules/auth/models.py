# Supabase Auth
# This module uses Supabase's built-in authentication system
# Supabase Auth handles:
# - User registration (auth.users table)
# - User login and session management
# - JWT token generation, refresh and validation
# - Password hashing and security
# - Auth state change notifications (SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, USER_UPDATED)

"""
Supabase Auth provides:
- auth.sign_up() - Register new users (full_name/username stored in user_metadata)
- auth.sign_in_with_password() - Authenticate users
- auth.get_session() - Restore the persisted session
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users
- auth.on_auth_state_change() - Subscribe to out-of-band auth events
- auth.admin.delete_user() - Remove an identity (service role key only)

The public identity of each user lives in the profiles table
(see modules/profiles/models.py), keyed by auth.users.id.
"""
