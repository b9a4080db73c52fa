"""
Term Structure Engine

Modules:
- daycount: day count conventions + registry + yearfrac
- interpolation: linear / natural cubic spline interpolators
- curves: zero curves (point-supplied, flat), QC report, scenario shifts
- instruments: deposits, rate futures, par swaps as calibration instruments
- bootstrap: curve bootstrapping from instruments
- volsurface: flat / grid-interpolated / smile vol surfaces
- utils: tenors, business day rolls, coupon schedules
- errors: construction error taxonomy
"""
