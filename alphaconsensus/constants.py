"""Physical constants, residue masses and consensus defaults.

Masses are needed by the fragment-ion similarity (PEPIons), everything else
describes the consensus tool itself: recognised score types, the synthetic
search-engine name written to the output, and default parameters.

Constants are provided in both dictionary and ord()-indexed array formats
for compatibility with both standard Python and Numba JIT-compiled code.

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- IUPAC amino acid masses: https://www.unimod.org/masses.html
- Unimod modification masses: https://www.unimod.org/modifications_list.php
"""

import numpy as np

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
PROTON_MASS = 1.007276466622  # Da

# Water mass (H2O)
H2O_MASS = 18.010564684  # Da

# =============================================================================
# Amino Acid Monoisotopic Residue Masses (Da)
# =============================================================================

AA_MASSES_DICT = {
    'A': 71.037114,
    'R': 156.101111,
    'N': 114.042927,
    'D': 115.026943,
    'C': 103.009185,
    'E': 129.042593,
    'Q': 128.058578,
    'G': 57.021464,
    'H': 137.058912,
    'I': 113.084064,
    'L': 113.084064,
    'K': 128.094963,
    'M': 131.040485,
    'F': 147.068414,
    'P': 97.052764,
    'S': 87.032028,
    'T': 101.047679,
    'W': 186.079313,
    'Y': 163.063320,
    'V': 99.068414,
}

# Ambiguity codes mapped to the closest standard residue mass
AA_MASSES_NONSTANDARD = {
    'X': 113.084064,  # Unknown → Leu/Ile
    'Z': 128.058578,  # Glu/Gln → Gln
    'B': 114.042927,  # Asp/Asn → Asn
    'J': 113.084064,  # Leu/Ile
    'U': 150.953636,  # Selenocysteine
    'O': 237.147727,  # Pyrrolysine
}

# ord()-indexed lookup array for Numba: AA_MASSES[ord('A')] → 71.037114
AA_MASSES = np.zeros(256, dtype=np.float64)
for aa, mass in AA_MASSES_DICT.items():
    AA_MASSES[ord(aa)] = mass
for aa, mass in AA_MASSES_NONSTANDARD.items():
    AA_MASSES[ord(aa)] = mass

# =============================================================================
# Modification Masses (Unimod monoisotopic deltas)
# =============================================================================

MODIFICATION_MASSES = {
    'Carbamidomethyl': 57.021464,   # Unimod:4
    'Oxidation': 15.994915,         # Unimod:35
    'Acetyl': 42.010565,            # Unimod:1
    'Phospho': 79.966331,           # Unimod:21
    'Deamidated': 0.984016,         # Unimod:7
    'Deamidation': 0.984016,
    'Methyl': 14.015650,            # Unimod:34
    'Amidated': -0.984016,          # Unimod:2
    'Gln->pyro-Glu': -17.026549,    # Unimod:28
    'Glu->pyro-Glu': -18.010565,    # Unimod:27
    'TMT6plex': 229.162932,         # Unimod:737
}

# =============================================================================
# Score Types
# =============================================================================

# Score types accepted as posterior error probabilities (compared lower-case)
PEP_SCORE_TYPES = frozenset({"posterior error probability", "pep"})

# =============================================================================
# Consensus Tool Identity and Defaults
# =============================================================================

SEARCH_ENGINE_NAME = "alphaconsensus/ConsensusID"

ALGORITHMS = ("PEPMatrix", "PEPIons", "best", "average", "ranks")

DEFAULT_RT_DELTA = 0.1
DEFAULT_MZ_DELTA = 0.1
DEFAULT_CONSIDERED_HITS = 10
DEFAULT_ALGORITHM = "PEPMatrix"

# Meta value key for the fraction of other runs agreeing with a consensus hit
SUPPORT_META_KEY = "consensus_support"
