"""AMF resources, status and reconciler."""