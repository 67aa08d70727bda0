"""Gold items kept on the device and reconciled with the cloud

The local collection is the working copy: every change lands there first
and is then pushed to the remote row store. Pulls merge the newest remote
rows back in with a last-write-wins rule on `updated_at`."""
