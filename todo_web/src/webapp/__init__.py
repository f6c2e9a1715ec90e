"""
Todo web client package.

A FastAPI service holding the view state of a single-user todo list whose
rows live in a hosted Supabase `todos` table. Build the application with
`src.webapp.main.create_app`, or run the module-level `src.webapp.main:app`.
"""
