"""
lcmgen: code generator for LCM message types.

Parses .lcm type definitions, computes each type's structural fingerprint,
derives backend-neutral size/encode/decode procedures, and renders them
as a Python module or as MATLAB functions for the lcm-matlab runtime.
"""
