import numpy as np
import scipy.interpolate

from models.vehicle import polyeval


class ReferenceRoad:
    """
    Global-frame reference waypoints with arc-length interpolation.

    Supplies the controller's inputs each cycle: the waypoints ahead of the
    vehicle are moved into the vehicle frame and fitted with a cubic.
    """

    def __init__(self, x_m, y_m, name="road"):

        x_m = np.asarray(x_m, dtype=float).reshape(-1)
        y_m = np.asarray(y_m, dtype=float).reshape(-1)
        if x_m.shape != y_m.shape:
            raise ValueError(f"Waypoint arrays have inconsistent lengths: {x_m.shape} vs {y_m.shape}")
        if len(x_m) < 4:
            raise ValueError("At least 4 waypoints are needed to fit a cubic reference path.")

        self.name = name
        self.data = {}
        self.data["posX_m"] = x_m
        self.data["posY_m"] = y_m

        ds = np.hypot(np.diff(x_m), np.diff(y_m))
        if np.any(ds <= 0.0):
            raise ValueError("Waypoints must be distinct and ordered along the road.")
        self.data["s_m"] = np.concatenate(([0.0], np.cumsum(ds)))
        self.length_m = float(self.data["s_m"][-1])

        # Heading of each segment, last one repeated
        psi = np.unwrap(np.arctan2(np.diff(y_m), np.diff(x_m)))
        self.data["psi_rad"] = np.concatenate((psi, psi[-1:]))

        # Centerline position as a function of s-coordinate
        self.posX_m_interp_fcn  = scipy.interpolate.interp1d(self.data["s_m"], self.data["posX_m"], kind="linear", fill_value="extrapolate")
        self.posY_m_interp_fcn  = scipy.interpolate.interp1d(self.data["s_m"], self.data["posY_m"], kind="linear", fill_value="extrapolate")

    @classmethod
    def sinusoid(cls, length_m=300.0, amplitude_m=5.0, wavelength_m=120.0, spacing_m=1.0, name="sinusoid"):
        """Road along +x with a sinusoidal lateral profile."""
        x_m = np.arange(0.0, length_m + spacing_m, spacing_m)
        y_m = amplitude_m * np.sin(2.0 * np.pi * x_m / wavelength_m)
        return cls(x_m, y_m, name=name)

    @classmethod
    def load_from_csv(cls, filename, name=None):
        """Load waypoints from a two-column x,y CSV (header lines starting with '#' are skipped)."""
        pts = np.loadtxt(filename, delimiter=",", ndmin=2)
        if pts.shape[1] < 2:
            raise ValueError(f"Expected at least 2 columns (x, y) in {filename}, got {pts.shape[1]}")
        return cls(pts[:, 0], pts[:, 1], name=name or str(filename))

    def nearest_s(self, x_m, y_m):
        """Approximate along-road coordinate of a global position."""
        dx = self.data["posX_m"] - x_m
        dy = self.data["posY_m"] - y_m
        idx = int(np.argmin(dx * dx + dy * dy))
        return float(self.data["s_m"][idx])

    def waypoints_ahead(self, x_m, y_m, lookahead_m=30.0, n_points=12, behind_m=2.0):
        """Global waypoints sampled from slightly behind the vehicle to lookahead_m ahead."""
        s0 = self.nearest_s(x_m, y_m)
        s = np.linspace(s0 - behind_m, s0 + lookahead_m, n_points)
        s = np.clip(s, 0.0, self.length_m)
        return self.posX_m_interp_fcn(s), self.posY_m_interp_fcn(s)

    @staticmethod
    def to_vehicle_frame(px, py, x_m, y_m, psi_rad):
        """Rotate/translate global points into the frame of a vehicle at (x, y, psi)."""
        dx = np.asarray(px) - x_m
        dy = np.asarray(py) - y_m
        cos_psi = np.cos(psi_rad)
        sin_psi = np.sin(psi_rad)
        local_x = dx * cos_psi + dy * sin_psi
        local_y = -dx * sin_psi + dy * cos_psi
        return local_x, local_y

    def fit_reference(self, x_m, y_m, psi_rad, lookahead_m=30.0, n_points=12):
        """
        Fit the cubic reference path in the vehicle frame.

        Returns:
            (coeffs, cte, epsi): coeffs = [c0, c1, c2, c3] for y = f(x), and the
            path errors of a vehicle sitting at the frame origin with zero heading.
        """
        px, py = self.waypoints_ahead(x_m, y_m, lookahead_m, n_points)
        local_x, local_y = self.to_vehicle_frame(px, py, x_m, y_m, psi_rad)

        # np.polyfit returns the highest order first
        coeffs = np.polyfit(local_x, local_y, 3)[::-1].copy()

        cte = float(polyeval(coeffs, 0.0))
        epsi = float(-np.arctan(coeffs[1]))
        return coeffs, cte, epsi

    def __repr__(self):
        return f"ReferenceRoad({self.name}, {len(self.data['s_m'])} waypoints, {self.length_m:.1f} m)"
