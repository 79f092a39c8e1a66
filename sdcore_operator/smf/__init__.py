"""SMF resources, status and reconciler."""