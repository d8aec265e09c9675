from __future__ import annotations


class DataNotFoundError(LookupError):
    """No observations left for the requested taxon/location."""

    def __init__(self, genus: str, species: str, country: str, reason: str = "no matching rows"):
        self.genus = genus
        self.species = species
        self.country = country
        self.reason = reason
        super().__init__(f"{genus} {species} @ {country}: {reason}")


class FitConvergenceError(RuntimeError):
    """IRLS stopped without meeting the deviance tolerance."""

    def __init__(self, iterations: int, deviance: float, message: str | None = None):
        self.iterations = iterations
        self.deviance = deviance
        detail = message or "IRLS did not converge"
        super().__init__(f"{detail} after {iterations} iterations (last deviance={deviance:.6g})")
