"""
MonkeyFinder application package.

  finder/models.py    the :class:`Monkey` record and its wire format.
  finder/services/    business logic: the fetch-once monkey cache and the
                      in-memory rating store.

``MonkeyFinder`` (in ``monkeyfinder.py``) is the integration point: it creates
one instance of each service and exposes them as public attributes
(``finder.monkey_service``, ``finder.rating_service``).  The command line in
``monkeyfinder.py`` and the Flask routes in ``monkeyfinder_gui.py`` both talk
to the services directly.
"""
