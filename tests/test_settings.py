import numpy as np
import pytest

from vioflow.settings import CoordinateChoice, FilterSettings, coordinate_selection


def _config():
    return {
        "processVariance": {
            "biasGyr": 0.002,
            "biasAcc": 0.003,
            "attitude": 0.004,
            "position": 0.005,
            "velocity": 0.006,
            "point": 0.007,
            "cameraAttitude": 0.008,
            "cameraPosition": 0.009,
        },
        "measurementNoise": {
            "feature": 0.5,
            "featureOutlierAbs": 1e-3,
            "featureOutlierProb": 0.1,
            "featureRetention": 0.4,
        },
        "velocityNoise": {"gyr": 0.2, "acc": 0.3, "gyrBias": 0.01, "accBias": 0.02},
        "initialVariance": {
            "attitude": 2.0,
            "position": 3.0,
            "velocity": 4.0,
            "point": 5.0,
            "biasGyr": 6.0,
            "biasAcc": 7.0,
            "cameraAttitude": 0.2,
            "cameraPosition": 0.3,
        },
        "settings": {
            "useDiscreteInnovationLift": False,
            "useDiscreteVelocityLift": False,
            "fastRiccati": True,
            "useMedianDepth": False,
            "useFeaturePredictions": True,
            "useEquivariantOutput": False,
            "coordinateChoice": "InvDepth",
        },
        "initialValue": {
            "sceneDepth": 10.0,
            "cameraOffset": [[1, 0, 0, 0.1], [0, 1, 0, 0.2], [0, 0, 1, 0.3], [0, 0, 0, 1]],
        },
    }


def test_defaults_match_source():
    settings = FilterSettings()
    assert settings.bias_omega_process_variance == 0.001
    assert settings.measurement_noise == 0.1
    assert settings.outlier_threshold_abs == 1e8
    assert settings.feature_retention == 0.3
    assert settings.initial_camera_attitude_variance == 0.1
    assert settings.use_discrete_innovation_lift is True
    assert settings.fast_riccati is False
    assert settings.coordinate_choice is CoordinateChoice.EUCLIDEAN
    assert np.array_equal(settings.camera_offset, np.eye(4))


def test_read_full_config_without_output(capsys):
    settings = FilterSettings.from_config(_config())
    assert capsys.readouterr().out == ""
    assert settings.bias_omega_process_variance == 0.002
    assert settings.camera_position_process_variance == 0.009
    assert settings.outlier_threshold_abs == 1e-3
    assert settings.vel_acc_bias_walk == 0.02
    assert settings.initial_bias_accel_variance == 7.0
    assert settings.initial_scene_depth == 10.0
    assert settings.use_discrete_velocity_lift is False
    assert settings.fast_riccati is True
    assert settings.use_feature_predictions is True
    assert settings.coordinate_choice is CoordinateChoice.INV_DEPTH
    assert settings.camera_offset[:3, 3].tolist() == [0.1, 0.2, 0.3]


def test_missing_keys_keep_defaults():
    settings = FilterSettings.from_config({"settings": {"coordinateChoice": "Normal"}})
    assert settings.coordinate_choice is CoordinateChoice.NORMAL
    assert settings.velocity_process_variance == FilterSettings().velocity_process_variance
    assert settings.use_median_depth is True


def test_flat_camera_offset_is_row_major():
    flat = [1, 0, 0, 4, 0, 1, 0, 5, 0, 0, 1, 6, 0, 0, 0, 1]
    settings = FilterSettings.from_config(
        {"settings": {"coordinateChoice": "Euclidean"}, "initialValue": {"cameraOffset": flat}}
    )
    assert settings.camera_offset[:3, 3].tolist() == [4.0, 5.0, 6.0]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Euclidean", CoordinateChoice.EUCLIDEAN),
        ("InvDepth", CoordinateChoice.INV_DEPTH),
        ("Normal", CoordinateChoice.NORMAL),
    ],
)
def test_coordinate_selection(name, expected):
    assert coordinate_selection({"settings": {"coordinateChoice": name}}) is expected


def test_invalid_coordinate_choice_raises():
    with pytest.raises(ValueError, match="Invalid coordinate choice"):
        coordinate_selection({"settings": {"coordinateChoice": "Polar"}})


def test_missing_coordinate_choice_raises():
    with pytest.raises(ValueError, match="Invalid coordinate choice"):
        FilterSettings.from_config({"processVariance": {"biasGyr": 0.1}})


def test_wrong_type_raises():
    config = _config()
    config["processVariance"]["attitude"] = "lots"
    with pytest.raises(ValueError, match="processVariance:attitude"):
        FilterSettings.from_config(config)


def test_bad_camera_offset_raises():
    config = _config()
    config["initialValue"]["cameraOffset"] = [1, 2, 3]
    with pytest.raises(ValueError, match="cameraOffset"):
        FilterSettings.from_config(config)