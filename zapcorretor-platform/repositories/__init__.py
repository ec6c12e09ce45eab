"""Supabase persistence for profiles, instance records and global settings."""
