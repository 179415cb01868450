"""Describes the lunch room domain. Centres around the `LunchRoom`.

Why is this hard?

- Everything about a room lives in one document in a dumb key-value store.
  No transactions, no locks. Edits race and the last one wins.
- "Today" has to mean the same day for everyone in the room, wherever they
  are. So days are computed in one fixed timezone.
- Two picks a day. The counter resets because tomorrow's state lives under a
  different key, not because anything runs at midnight.
- Nobody wants the same thing three days running, unless that is all there is.

Should be able to fake the store. The rest is plain Python.
"""
