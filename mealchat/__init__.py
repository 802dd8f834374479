"""
Conversational meal logging against the Fineli food database.

Turns parsed food mentions into nutrient-quantified meal entries,
one conversational turn at a time.

Structure:
- domain/: Item resolution state machine, Fineli value model, templates
- application/: Conversation orchestrator driving items turn by turn
- infrastructure/: Config, logging, in-memory search adapters
- tests/: Test suite (unit)
"""

__version__ = "1.0.0"
