"""
Coffee catalog REST API.

A FastAPI service exposing a coffee catalog stored in a JSON file, MongoDB
or a Supabase/Postgres table, chosen by environment configuration.
"""
