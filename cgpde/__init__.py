"""
CGPDE - Cartesian Genetic Programming with Differential Evolution.

Evolves neural-network classifiers as CGP chromosomes and compares three
ways of finding their connection weights: weight mutation (CGPANN), DE
inside every generation (CGPDE-IN) and DE after evolution (CGPDE-OUT).
"""

__version__ = '0.1.0'
