"""Tag Cluster Reconciler (TCR).

Keeps a process group's set of connected peers in step with an EC2 tag
inventory:
 - polls the inventory on a timer (one serialized cycle at a time)
 - diffs the fetched peers against the last known membership
 - disconnects removed peers, connects added peers
 - corrects the membership snapshot for partial transport failures

A failed fetch never counts as "no peers"; the cycle is skipped instead.
"""
