"""
notecase: ZIP/Markdown and JSON import/export for a Supabase-backed
notebook → section → item → note hierarchy.
"""

__version__ = "0.1.0"
