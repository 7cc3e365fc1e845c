"""Mark-sheet -> validated student result records.

The engine (reportcards.services.engine.parse) is a pure function from a raw
cell grid and a class template to computed records plus diagnostics; the
remaining packages read workbooks, load templates, write payloads and drive
batches from the command line.
"""

__version__ = "0.1.0"
