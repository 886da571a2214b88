"""
Osmotic — Decay-Rate Engine for Adaptive Flows and Conviction Funding
======================================================================
Pure, integer-only math for streams whose rate glides toward a target,
for stake that turns into conviction over time, and for converting stake
or conviction into a bounded funding rate.  Callers keep their own state;
the engine only transforms it.

Package layout::

    osmotic/
    ├── __main__.py        # python -m osmotic projection report
    ├── config.py          # YAML → typed profiles + network map
    ├── constants.py       # Fixed-point scale, time units, defaults
    ├── errors.py          # Error taxonomy
    ├── engine/
    │   ├── fixed_point.py # 1e18 arithmetic, pow / ln / exp / sqrt
    │   ├── decay.py       # Rate + conviction recurrence, DecayParameters
    │   ├── integral.py    # Closed-form streamed amount
    │   └── threshold.py   # Square-root target rate / reward
    └── services/
        ├── flow_ledger.py    # In-memory adaptive flows + balances
        └── funding_ledger.py # In-memory proposals, stakes, funding rates
"""

__version__ = "0.1.0"
