# Nexus board core: deal pipeline and task tracking state, synced to Firestore
#
# Components:
#   schema.py      - Data model (Deal, Client, Task, Project and their enums)
#   sample_data.py - Built-in sample dataset used when the remote is unavailable
#   config.py      - YAML + environment configuration
#   cache.py       - SQLite cache of the last known tasks/projects
#   events.py      - Observable state container (subscribe/unsubscribe/dispose)
#   remote.py      - Firestore REST client, polling subscription, write dispatcher
#   deals.py       - Deal board store (per-stage ordering index)
#   tasks.py       - Task store (status, checklist, due date)
#   dragdrop.py    - Drop resolution for the deal board and the calendar
#   views.py       - View models: filters, totals, calendar grid, text summaries
#   workspace.py   - Wires config, remote, cache and stores together
