# Authority Register // GPL-3.0-or-later
"""Register numbering core.

Modules:
    validator   — token parsing ("FA250" -> IdentifierClass.FA, 250)
    operations  — register / deregister / increment / decrement / seed
"""
