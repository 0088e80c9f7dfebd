from rest_framework import status as http_status
from rest_framework.response import Response


def ok(data=None, message=None, status=http_status.HTTP_200_OK):
    payload = {"success": True}
    if message:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    return Response(payload, status=status)
