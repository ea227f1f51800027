"""Domain layer: records, billing rules, error taxonomy, edit forms.

Domain modules should not depend on UI. Repositories are passed in by callers.
"""
