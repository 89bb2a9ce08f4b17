from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsLandlord(BasePermission):
    message = "You do not have permission to access that page."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "user_type", None) == "landlord")


class IsStudent(BasePermission):
    message = "Only student accounts can access that page."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "user_type", None) == "student")


class IsLandlordOrReadOnly(IsLandlord):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)


class IsStudentOrReadOnly(IsStudent):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)
