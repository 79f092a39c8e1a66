"""UPF resources, status and reconciler."""