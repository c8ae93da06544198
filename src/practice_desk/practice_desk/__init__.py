"""Practice Desk package.

Recurring compliance task engine organised by feature modules (recurrence,
completions, identity, tasks, cycles, visits, ...) with a thin Flask
controller layer over service/repository layers.
"""
