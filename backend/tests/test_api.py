from lms.exceptions import FileProcessingError


def _course(client, name="Java", level="Beginner"):
    r = client.post('/course', json={'name': name, 'level': level})
    assert r.status_code == 200
    return r.json()


def _plan(client, name="Java FS", plan_type="Tech", batch_ids=(1,)):
    r = client.post('/learning-plan', json={'name': name, 'type': plan_type, 'batch_ids': list(batch_ids)})
    assert r.status_code == 200
    return r.json()


def _module_body(plan_id, course_id, trainer="A", start="2024-01-01", end="2024-01-31"):
    return {'learning_plan_id': plan_id, 'course_id': course_id, 'trainer': trainer,
            'start_date': start, 'end_date': end}


def test_health_and_request_id(client):
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.status_code == 200
    assert r.headers['X-Request-ID'] == 'abc123'


def test_course_by_level(client):
    created = _course(client, "Java", "Beginner")
    _course(client, "Spark", "Difficult")
    r = client.get('/course/level/Beginner')
    assert r.status_code == 200
    assert r.json() == [{'id': created['id'], 'name': 'Java', 'level': 'Beginner'}]


def test_course_endpoints(client):
    created = _course(client)
    assert client.get(f"/course/id/{created['id']}").json()['name'] == 'Java'
    assert client.get('/course/id/999').status_code == 404
    assert client.get('/course/dto').json() == [
        {'course_id': created['id'], 'course_name': 'Java', 'level': 'Beginner'}
    ]
    r = client.patch(f"/course/name/{created['id']}", json={'name': 'Java 21'})
    assert r.status_code == 200
    assert r.json()['name'] == 'Java 21'
    dup = client.post('/course', json={'name': 'Java 21', 'level': 'Beginner'})
    assert dup.status_code == 409
    assert dup.json() == {'status': 409, 'message': "Course with name 'Java 21' already exists"}
    assert client.post('/course', json={'level': 'Beginner'}).status_code == 400
    assert client.get('/course/level/Expert').status_code == 400
    assert client.delete(f"/course/{created['id']}").status_code == 200
    assert client.delete(f"/course/{created['id']}").status_code == 404


def test_course_bulk_delete(client):
    a = _course(client, "A")
    b = _course(client, "B")
    r = client.request('DELETE', '/course/multiple', json={'ids': [a['id'], b['id'], 999]})
    assert r.status_code == 200
    assert r.json()['deleted'] == 2
    assert client.get('/course').json() == []


def test_learning_plan_endpoints(client):
    plan = _plan(client, batch_ids=[1])
    merged = _plan(client, batch_ids=[2])
    assert merged['id'] == plan['id']
    assert merged['batch_ids'] == [1, 2]
    assert len(client.get('/learning-plan').json()) == 1
    assert client.get(f"/learning-plan/{plan['id']}").json()['name'] == 'Java FS'
    assert client.get('/learning-plan/999').status_code == 404
    assert [p['id'] for p in client.get('/learning-plan/type/Tech').json()] == [plan['id']]
    assert client.get('/learning-plan/type/NonTech').status_code == 404
    assert client.get('/learning-plan/batch/2').json()['id'] == plan['id']
    assert client.get('/learning-plan/batch/7,1').json()['id'] == plan['id']
    assert client.get('/learning-plan/batch/7').status_code == 404
    bad = client.get('/learning-plan/batch/1,x')
    assert bad.status_code == 400
    assert bad.json()['status'] == 400
    r = client.put(f"/learning-plan/{plan['id']}/update-name", json={'name': 'Java Full Stack'})
    assert r.json()['name'] == 'Java Full Stack'
    assert client.delete(f"/learning-plan/{plan['id']}").status_code == 200
    assert client.delete(f"/learning-plan/{plan['id']}").status_code == 404


def test_learning_plan_batch_conflict(client):
    _plan(client, batch_ids=[1])
    r = client.post('/learning-plan', json={'name': 'Other', 'type': 'Tech', 'batch_ids': [1]})
    assert r.status_code == 409
    assert r.json()['message'] == 'Learning plan for this batch already exists'


def test_duplicate_module_is_conflict(client):
    plan = _plan(client)
    course = _course(client)
    first = client.post('/module', json=_module_body(plan['id'], course['id'], trainer='A'))
    assert first.status_code == 200
    assert first.json()['course']['name'] == 'Java'
    second = client.post('/module', json=_module_body(plan['id'], course['id'], trainer='B'))
    assert second.status_code == 409
    assert second.json()['status'] == 409


def test_module_validation_errors_are_bad_request(client):
    plan = _plan(client)
    course = _course(client)
    body = _module_body(plan['id'], course['id'])
    del body['trainer']
    r = client.post('/module', json=body)
    assert r.status_code == 400
    assert set(r.json()) == {'status', 'message'}
    malformed = _module_body(plan['id'], course['id'], start='not-a-date')
    assert client.post('/module', json=malformed).status_code == 400
    reversed_dates = _module_body(plan['id'], course['id'], start='2024-02-01', end='2024-01-01')
    assert client.post('/module', json=reversed_dates).status_code == 400
    assert client.post('/module', json=_module_body(999, course['id'])).status_code == 404


def test_module_updates(client):
    plan = _plan(client)
    course = _course(client)
    module = client.post('/module', json=_module_body(plan['id'], course['id'])).json()
    assert client.patch(f"/module/trainer/{module['id']}", json={'trainer': 'X'}).status_code == 200
    assert [m['id'] for m in client.get('/module/trainer/X').json()] == [module['id']]
    r = client.patch('/module/trainer/99', json={'trainer': 'X'})
    assert r.status_code == 404
    assert r.json() == {'status': 404, 'message': 'Module not found for ID: 99'}
    r = client.patch(f"/module/update-dates/{module['id']}",
                     json={'start_date': '2024-05-01', 'end_date': '2024-05-10'})
    assert r.status_code == 200
    assert (r.json()['start_date'], r.json()['end_date']) == ('2024-05-01', '2024-05-10')
    r = client.patch(f"/module/update-dates/{module['id']}",
                     json={'start_date': '2024-05-10', 'end_date': '2024-05-01'})
    assert r.status_code == 400


def test_save_many_modules_reports_partial_success(client):
    plan = _plan(client)
    java = _course(client, "Java")
    sql = _course(client, "SQL")
    r = client.post('/module/multiple', json=[
        _module_body(plan['id'], java['id']),
        _module_body(plan['id'], sql['id']),
        _module_body(plan['id'], java['id'], trainer='B'),
    ])
    assert r.status_code == 409
    body = r.json()
    assert body['failed_index'] == 2
    assert len(body['completed']) == 2
    assert len(client.get('/module').json()) == 2


def test_delete_modules_by_learning_plan(client):
    plan = _plan(client)
    java = _course(client, "Java")
    sql = _course(client, "SQL")
    ok = client.post('/module/multiple', json=[_module_body(plan['id'], java['id']),
                                               _module_body(plan['id'], sql['id'])])
    assert ok.status_code == 200
    r = client.delete(f"/module/learning-plan-id/{plan['id']}")
    assert r.status_code == 200
    assert len(r.json()['deleted']) == 2
    assert client.get(f"/module/learning-plan-id/{plan['id']}").json() == []


def test_delete_module_endpoints(client):
    plan = _plan(client)
    java = _course(client, "Java")
    sql = _course(client, "SQL")
    a = client.post('/module', json=_module_body(plan['id'], java['id'])).json()
    b = client.post('/module', json=_module_body(plan['id'], sql['id'])).json()
    assert client.delete(f"/module/{a['id']}").status_code == 200
    assert client.delete(f"/module/{a['id']}").status_code == 404
    r = client.request('DELETE', '/module/multiple', json={'ids': [a['id'], b['id']]})
    assert r.json()['deleted'] == 1
    assert client.get('/module').json() == []


def test_course_in_use_cannot_be_deleted(client):
    plan = _plan(client)
    course = _course(client)
    client.post('/module', json=_module_body(plan['id'], course['id']))
    assert client.delete(f"/course/{course['id']}").status_code == 400


def test_file_processing_error_body():
    assert FileProcessingError("bad sheet").to_dict() == {'status': 500, 'message': 'bad sheet'}


def test_learning_plan_with_modules_cannot_be_deleted(client):
    plan = _plan(client)
    course = _course(client)
    client.post('/module', json=_module_body(plan['id'], course['id']))
    r = client.delete(f"/learning-plan/{plan['id']}")
    assert r.status_code == 400
    assert r.json()['status'] == 400
    assert client.delete(f"/module/learning-plan-id/{plan['id']}").status_code == 200
    assert client.delete(f"/learning-plan/{plan['id']}").status_code == 200
