"""In-process ledger model.

:class:`~unsctl.ledger.chain.LocalChain` stands in for the external ledger
network on the ``local`` network and in tests: it orders transactions,
mines one block per transaction, and hands out receipts. The programs in
:mod:`unsctl.ledger.programs` model the UNS and CNS contract suite closely
enough to deploy, configure, and mint against.
"""
