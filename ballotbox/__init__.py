"""Ballotbox - election lifecycle management with role-based access.

Ballotbox keeps the complete state of a set of elections in a single
:class:`system.ElectionSystem` object and lets its callers move through the
lifecycle of an election:

-   Users ask to be registered; the administrator reviews the requests in
    the order they arrived (the :mod:`registry` module).
-   The administrator creates elections with a voting window. Registered
    users ask to be admitted to an election as voters or candidates, again
    reviewed in order; candidates are numbered in the order of admission
    (the :mod:`election` module).
-   Admitted voters cast exactly one vote each while the window is open.
-   Once the window closes, the results are computed once and kept fixed.
-   The report generator (or the administrator) can then produce voter,
    participation and result reports with the :mod:`report` module.

The caller identity and the current time come from an
:class:`env.Environment` supplied by the host. Failures are raised as
subclasses of :class:`errors.ElectionSystemError`.
"""
