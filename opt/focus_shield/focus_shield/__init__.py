"""Local Do Not Disturb bridge served over the focus_shield command channel."""
