"""Step-size adaptation by dual averaging (Hoffman & Gelman 2014, §3.2)."""

import math


class DualAveraging:
    """Tune the leapfrog step size toward a target acceptance rate.

    Call :meth:`update` once per warm-up iteration with that iteration's
    acceptance statistic; it returns the step size for the next iteration.
    After warm-up, sample with :attr:`final_step_size`, the running average
    of the log step sizes.

    Parameters
    ----------
    initial_step_size : float
        Step size at the start of warm-up.
    target_accept : float
        Target average acceptance probability, in (0, 1).
    gamma, t0, kappa : float
        Shrinkage, iteration offset and averaging decay (defaults from the
        NUTS paper).
    """

    def __init__(self, initial_step_size, target_accept, gamma=0.05, t0=10.0, kappa=0.75):
        self.target_accept = target_accept
        self.gamma = gamma
        self.t0 = t0
        self.kappa = kappa
        self.mu = math.log(10 * initial_step_size)  # Dual averaging target
        self.h_bar = 0.0
        self.log_epsilon_bar = 0.0
        self.iteration = 0

    def update(self, accept_prob):
        m = self.iteration
        eta = 1.0 / (m + 1 + self.t0)
        self.h_bar = (1 - eta) * self.h_bar + eta * (self.target_accept - accept_prob)
        log_epsilon = self.mu - (math.sqrt(m + 1) / self.gamma) * self.h_bar

        # Clip to prevent explosion or collapse
        log_epsilon = max(min(log_epsilon, 10.0), -10.0)

        m_eta = float(m + 1) ** (-self.kappa)
        self.log_epsilon_bar = m_eta * log_epsilon + (1 - m_eta) * self.log_epsilon_bar
        self.iteration += 1
        return math.exp(log_epsilon)

    @property
    def final_step_size(self):
        return math.exp(self.log_epsilon_bar)
