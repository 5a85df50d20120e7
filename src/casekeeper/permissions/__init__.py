"""
Staff-role hierarchy and user-override resolution.

- **resolver.py**: answers who is staff, who may run which command, whose
  actions are recorded, and which targets are immune.
"""
