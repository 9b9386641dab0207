"""
Test suite for the hh_cell simulator.

Run tests with:
    pytest test/
    pytest test/ -v
    pytest test/ -m "not slow"
    pytest test/ -k "physiological"
"""
