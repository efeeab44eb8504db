import numpy as np

# Pad added around observed bounds so that boundary individuals never map to exactly 0 or 1
EPSILON = 1e-10


class BoundsScaler:
    """Affine per-variable mapping between a raw box and the unit hypercube."""

    def __init__(self, lower, upper):
        """
        Parameters:
        -----------
        lower : array-like
            Per-variable lower bounds of the raw domain
        upper : array-like
            Per-variable upper bounds of the raw domain
        """
        self.lower = np.asarray(lower, dtype=float)
        self.upper = np.asarray(upper, dtype=float)

    @classmethod
    def from_population(cls, pop, epsilon=EPSILON):
        """
        Build a scaler from the observed min/max of a population, padded by epsilon.

        Parameters:
        -----------
        pop : np.ndarray
            Population, every row an individual
        epsilon : float, optional
            Pad subtracted from the minimum and added to the maximum

        Returns:
        --------
        BoundsScaler
        """
        pop = np.atleast_2d(pop)
        return cls(pop.min(axis=0) - epsilon, pop.max(axis=0) + epsilon)

    @property
    def shifts(self):
        return self.upper - self.lower

    def scale_down(self, pop):
        """Map raw individuals into [0, 1]."""
        return (np.atleast_2d(pop) - self.lower) / self.shifts

    def scale_up(self, pop):
        """Map normalised individuals back into the raw domain."""
        return np.atleast_2d(pop) * self.shifts + self.lower
