# Authority Register // GPL-3.0-or-later
