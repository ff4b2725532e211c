"""
Physical defaults and numeric settings for the polymer models.

Defaults follow the values commonly used for lambda-phage DNA (48.5 kbp)
in optical tweezers experiments at room temperature.

References
----------
.. [1] T. Odijk, Macromolecules 28 (1995) 7016-7018
       "Stiff chains and filaments under tension"
.. [2] P. Gross et al., Nature Physics 7 (2011) 731-736
       "Quantifying how DNA stretches, melts and changes twist under tension"
.. [3] M. D. Wang et al., Biophys. J. 72 (1997) 1335-1346
       "Stretching DNA with optical tweezers"
"""

# =============================================================================
# Physical Defaults
# =============================================================================

DEFAULT_LP = 50.0
"""
Persistence length Lp [nm].

Bending stiffness of double-stranded DNA in physiological buffer [3].
"""

DEFAULT_LC = 16.5
"""
Contour length Lc [um].

Contour length of lambda-phage DNA (48.5 kbp at 0.34 nm/bp).
"""

DEFAULT_S = 1500.0
"""
Stretch modulus S [pN].

Enthalpic elasticity of dsDNA [3]; typical fit values 1000-1800 pN.
"""

DEFAULT_KT = 4.11
"""
Thermal energy kT [pN nm] at 298 K.
"""

DEFAULT_FC = 30.6
"""
Critical force Fc [pN] of the twist-stretch coupling in the tWLC [2].

Below Fc the coupling is constant, g = g0 + g1*Fc.
"""

DEFAULT_C = 440.0
"""
Twist rigidity C [pN nm^2] of dsDNA [2].
"""

DEFAULT_G0 = -637.0
"""
Twist-stretch coupling offset g0 [pN nm] [2].
"""

DEFAULT_G1 = 17.0
"""
Twist-stretch coupling slope g1 [nm] [2].
"""

# =============================================================================
# Model Validity
# =============================================================================

ODIJK_MAX_FORCE = 30.0
"""
Upper force limit [pN] for the Odijk eWLC model family.

Above ~30 pN DNA starts to unwind (twist-stretch coupling) and the eWLC no
longer describes the data. Fits trim data above this force unless the
caller disables trimming.
"""

F0_BOUNDS = (-20.0, 20.0)
"""
Bounds [pN] for the force offset F0 in offset-corrected models.
"""

# =============================================================================
# Numeric Inverses
# =============================================================================

TWLC_LOOKUP_FORCE_STEP = 0.01
"""
Force grid spacing [pN] for the lookup-table inverses (tWLC, FJC).

A 0.01 pN grid gives a relative error of order 1e-5 compared to the
scalar bounded-minimisation inverse for typical tWLC parameter values.
"""

TWLC_LOOKUP_MAX_FORCE = 1000.0
"""
Cap [pN] on the tWLC lookup grid.

F_max = (-g0 + sqrt(S*C)) / g1 diverges for g1 -> 0; the cap keeps the
grid at most 1e5 points. Measured curves never reach it.
"""

FJC_LOOKUP_FORCE_MAX = 100.0
"""
Upper end [pN] of the force grid used to invert the FJC model.
"""


__all__ = [
    'DEFAULT_LP',
    'DEFAULT_LC',
    'DEFAULT_S',
    'DEFAULT_KT',
    'DEFAULT_FC',
    'DEFAULT_C',
    'DEFAULT_G0',
    'DEFAULT_G1',
    'ODIJK_MAX_FORCE',
    'F0_BOUNDS',
    'TWLC_LOOKUP_FORCE_STEP',
    'TWLC_LOOKUP_MAX_FORCE',
    'FJC_LOOKUP_FORCE_MAX',
]
