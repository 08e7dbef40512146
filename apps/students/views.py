# students/views.py

from django.contrib.auth.decorators import login_required
from django.views.decorators.http import require_http_methods
from django.core.exceptions import ValidationError
from django.http import JsonResponse
import logging

from .forms import StudentRegistrationForm
from .models import Student
from .services import StudentService
from core.utils import paginate_queryset

logger = logging.getLogger(__name__)


def _student_dict(student):
    return {
        'id': str(student.pk),
        'full_name': student.full_name,
        'student_number': student.student_number or '',
        'phone': student.contact_phone,
        'parent_name': student.parent_name,
        'status': student.status,
        'credit_balance': str(student.credit_balance),
        'registration_fee_paid': student.registration_fee_paid,
    }


@login_required
@require_http_methods(["GET", "POST"])
def students(request):
    """GET: search the center's students. POST: register a student."""
    if getattr(request, 'center', None) is None:
        return JsonResponse({"success": False, "message": "No active center for this account"}, status=403)

    if request.method == 'GET':
        queryset = Student.objects.all()
        if request.GET.get('status'):
            queryset = queryset.filter(status=request.GET['status'])
        queryset = StudentService.search(queryset, request.GET.get('search'))

        page, paginator = paginate_queryset(request, queryset.order_by('full_name'))
        return JsonResponse({
            "success": True,
            "students": [_student_dict(student) for student in page.object_list],
            "page": page.number,
            "num_pages": paginator.num_pages,
            "count": paginator.count,
        })

    form = StudentRegistrationForm(request.POST)
    if not form.is_valid():
        return JsonResponse(
            {"success": False, "message": "Invalid data.", "errors": form.errors.get_json_data()},
            status=400
        )

    try:
        student = StudentService.register_student(
            request.center,
            form.cleaned_data,
            subject_ids=[subject.pk for subject in form.cleaned_data['subjects']],
            registration_fee=form.cleaned_data.get('registration_fee'),
        )
    except ValidationError as e:
        return JsonResponse({"success": False, "message": '; '.join(e.messages)}, status=400)
    except Exception as e:
        logger.error(f"Error registering student: {e}", exc_info=True)
        return JsonResponse({"success": False, "message": "Server error. Please try again."}, status=500)

    return JsonResponse({
        "success": True,
        "message": f"{student.full_name} registered",
        "student": _student_dict(student),
    }, status=201)
