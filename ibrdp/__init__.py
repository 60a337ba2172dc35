# Cache Replacement Package
"""
Instruction-based Reuse Distance Prediction (IbRDP)

A trace-driven cache replacement simulator combining:
- A PC-indexed reuse distance predictor with confidence counters
- A FIFO sampler measuring reuse distances from live traffic
- Victim selection by predicted time-left / observed idle time
"""

__version__ = "1.0.0"
