"""A small 3x3 matrix type for colour calculations."""

from __future__ import annotations

from numbers import Real
from typing import Iterator


class Matrix:
    """An immutable 3x3 matrix stored in row-major order."""

    __slots__ = ("m",)

    def __init__(self, *args: float) -> None:
        if not args:
            values = (0.0,) * 9
        elif len(args) == 3:
            d0, d1, d2 = args
            values = (d0, 0, 0, 0, d1, 0, 0, 0, d2)
        elif len(args) == 9:
            values = args
        else:
            raise TypeError("Matrix takes 0, 3 or 9 values")
        self.m = tuple(float(v) for v in values)

    @classmethod
    def diagonal(cls, d0: float, d1: float, d2: float) -> "Matrix":
        return cls(d0, d1, d2)

    def transpose(self) -> "Matrix":
        m = self.m
        return Matrix(m[0], m[3], m[6], m[1], m[4], m[7], m[2], m[5], m[8])

    def cofactors(self) -> "Matrix":
        m = self.m
        return Matrix(
            m[4] * m[8] - m[5] * m[7], -(m[3] * m[8] - m[5] * m[6]), m[3] * m[7] - m[4] * m[6],
            -(m[1] * m[8] - m[2] * m[7]), m[0] * m[8] - m[2] * m[6], -(m[0] * m[7] - m[1] * m[6]),
            m[1] * m[5] - m[2] * m[4], -(m[0] * m[5] - m[2] * m[3]), m[0] * m[4] - m[1] * m[3],
        )

    def adjugate(self) -> "Matrix":
        return self.cofactors().transpose()

    def determinant(self) -> float:
        m = self.m
        return (
            m[0] * (m[4] * m[8] - m[5] * m[7])
            - m[1] * (m[3] * m[8] - m[5] * m[6])
            + m[2] * (m[3] * m[7] - m[4] * m[6])
        )

    def inverse(self) -> "Matrix":
        det = self.determinant()
        if det == 0:
            raise ValueError("matrix is singular")
        return self.adjugate() * (1.0 / det)

    def __mul__(self, other):
        if isinstance(other, Matrix):
            a, b = self.m, other.m
            return Matrix(
                *(
                    a[i * 3] * b[j] + a[i * 3 + 1] * b[3 + j] + a[i * 3 + 2] * b[6 + j]
                    for i in range(3)
                    for j in range(3)
                )
            )
        if isinstance(other, Real):
            return Matrix(*(v * other for v in self.m))
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Real):
            return self * other
        return NotImplemented

    def __iter__(self) -> Iterator[float]:
        return iter(self.m)

    def __getitem__(self, index: int) -> float:
        return self.m[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.m == other.m

    def __hash__(self) -> int:
        return hash(self.m)

    def __repr__(self) -> str:
        return f"Matrix{self.m}"