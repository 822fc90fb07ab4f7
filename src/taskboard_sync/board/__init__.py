"""
Board subsystem.

Components:
- task_models.py: data structures (Task, Stage, Priority, Category, Attachment)
- task_events.py: channel event names + parsing of inbound payloads
- task_reducer.py: pure apply(state, event) -> state
- task_store.py: single-writer holder of the current BoardState
- task_commands.py: CommandEmitter (user intents -> outbound messages)
"""
