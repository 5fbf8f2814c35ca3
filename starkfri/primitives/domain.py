"""Evaluation domains: cosets of power-of-two multiplicative subgroups."""

from dataclasses import dataclass

from starkfri.primitives.field import FieldClass, coset_offset, get_root_of_unity


@dataclass(frozen=True)
class EvaluationDomain:
    """The set {offset * generator^i : 0 <= i < size}.

    Attributes:
        field: galois field class the domain lives in
        size: Number of points (power of two)
        generator: Primitive size-th root of unity
        offset: Coset shift (1 for the subgroup itself)
    """
    field: FieldClass
    size: int
    generator: int
    offset: int = 1

    @classmethod
    def subgroup(cls, field: FieldClass, size: int) -> "EvaluationDomain":
        """The subgroup of order size (trace domain)."""
        return cls(field, size, get_root_of_unity(field, size), 1)

    @classmethod
    def coset(cls, field: FieldClass, size: int) -> "EvaluationDomain":
        """The subgroup of order size shifted by the primitive element (LDE domain)."""
        return cls(field, size, get_root_of_unity(field, size), coset_offset(field))

    def element(self, i: int):
        """Domain point at position i, as a field scalar."""
        p = self.field.order
        return self.field(self.offset * pow(self.generator, i % self.size, p) % p)

    def elements(self):
        """All domain points in index order, as a field array."""
        p = self.field.order
        points = []
        x = self.offset % p
        for _ in range(self.size):
            points.append(x)
            x = x * self.generator % p
        return self.field(points)

    def square(self) -> "EvaluationDomain":
        """Domain of x^2 for x in this domain (half the size).

        Position i of the squared domain is the square of positions i and
        i + size/2 here, since generator^(size/2) = -1.
        """
        p = self.field.order
        return EvaluationDomain(
            self.field,
            self.size // 2,
            self.generator * self.generator % p,
            self.offset * self.offset % p,
        )
